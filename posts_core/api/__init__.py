"""
Posts core REST API package

Use ``create_app`` to build a configured application or the
global ``api`` wrapper to let ``uvicorn`` create one lazily.
"""

from .api import api, create_app
