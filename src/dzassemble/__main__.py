"""Entry point for dzassemble."""

from dzassemble.assemble.__main__ import main


if __name__ == "__main__":
    main()
