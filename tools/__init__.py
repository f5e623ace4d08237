"""Workspace Toolkit: credential resolution and provider tooling

Components:
    credentials.py: Shared credential resolution (config file + environment)
    logging_config.py: structlog setup shared by every CLI
    exceptions.py: Error types raised by the tools
    aws/: Route53 DNS management
    netlify/: Netlify site, domain, SSL and environment management
    google/: Google Workspace auth, Admin, Gmail, Drive and Docs
    excel/: Excel workbook reader with formula diagnostics
    pdf/: PDF text extraction with OCR fallback
    git/: Subtree synchronization helpers
"""

from pathlib import Path


__version__ = "0.3.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_DIR = PROJECT_ROOT / "config"
CREDENTIALS_DIR = PROJECT_ROOT / "credentials"
