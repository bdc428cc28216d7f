"""Example plugins built on the pipeline contract."""

from .meta_cognition import MetaCognitionPlugin
from .trust_framework import TrustFrameworkPlugin

__all__ = ["MetaCognitionPlugin", "TrustFrameworkPlugin"]
