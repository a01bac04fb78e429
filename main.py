#!/usr/bin/env python3
"""StatQuest entry point.

Run with:
    python main.py
    python -m statquest
"""

from statquest.__main__ import main


if __name__ == "__main__":
    main()
