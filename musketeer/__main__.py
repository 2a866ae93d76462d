"""Allow running the coordinator as a module: python -m musketeer."""

from musketeer.runner import main

if __name__ == "__main__":
    main()
