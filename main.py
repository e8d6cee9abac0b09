#!/usr/bin/env python3
"""
TextTable Converter - Main Entry Point

Runs the same command line as the installed `texttable` script:

Usage:
    python main.py to-table <file> [--delimiter comma]
    python main.py to-text <table_file>
    python main.py fixed-width <file> --widths 10,6,12
    python main.py analyze <file>
    python main.py export <file> <output.xlsx>
    python main.py llm-to-table <document>
    python main.py set-key <api_key>
    python main.py serve
"""

from texttable.cli import main


if __name__ == "__main__":
    main()
