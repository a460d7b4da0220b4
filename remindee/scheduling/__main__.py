"""Entry point for running the dispatch loop as a module.

Allows running with: python -m remindee.scheduling
"""

from remindee.scheduling.runner import main

if __name__ == "__main__":
    main()
