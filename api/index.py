"""
Narrative Adventure Web Server - Vercel Serverless Handler
Exposes the Flask app from server.py.
"""

import os
import sys

# Add parent directory to path for imports
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

from server import app  # noqa: E402


# Vercel looks for a WSGI callable named app or handler
handler = app
