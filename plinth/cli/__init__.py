"""
Plinth command-line interface.

Usage:
    plinth order myapp.bootstrap:builder
    plinth order myapp.bootstrap:builder --reverse
    plinth graph myapp.bootstrap:registry > plugins.dot
    plinth check myapp.bootstrap:plugins
"""

__version__ = "0.1.0"
__cli_name__ = "plinth"
