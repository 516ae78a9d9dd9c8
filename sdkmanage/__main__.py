"""
Entry point for running sdk-manage as a module.

Usage: python -m sdkmanage [command] [options]
"""

from sdkmanage.cli.parser import main

if __name__ == "__main__":
    main()
