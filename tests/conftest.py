"""
Shared pytest configuration for the phylogeny test suite.
"""

import os
import sys
import tempfile

# Keep test logs out of the working tree
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="ptree_logs_"))

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
