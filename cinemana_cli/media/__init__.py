"""
Media Processing Layer.

This package is responsible for all media file operations: streaming
downloads and ffmpeg post-processing.
"""

from .downloader import Downloader
from .postprocess import PostProcessor

__all__ = ["Downloader", "PostProcessor"]
