# Keep the repository root on sys.path so the flat modules import the same
# way they do when main.py is run directly.
import os
import sys

root = os.path.dirname(os.path.abspath(__file__))
if root not in sys.path:
    sys.path.insert(0, root)
