"""A concurrent video and subtitle downloader for the Cinemana catalog."""

__version__ = "1.0.0"
