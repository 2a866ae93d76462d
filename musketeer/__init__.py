"""musketeer: a kanban board worked by autonomous LLM agents."""
