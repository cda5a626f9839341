"""Allow ``python -m hostpanel.cli``."""

from hostpanel.cli import main

if __name__ == "__main__":
    main()
