"""
Entry point for running carddown as a module.

Usage:
    python -m carddown scan ~/notes
    python -m carddown revise
    python -m carddown --help
"""
from .cli import main

if __name__ == "__main__":
    main()
