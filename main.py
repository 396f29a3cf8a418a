#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

Drop reference tiles named ``dali0.png``, ``dali1.png``, ... into ``tiles/``,
photos into ``images/``, and run:

    python main.py batch

Or process one photo:

    python -m quad_mosaic.cli single my_photo.jpg --tiles tiles/
"""

from quad_mosaic.cli import app

if __name__ == "__main__":
    app()
