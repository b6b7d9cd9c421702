"""Cover Letter - an AI-assisted cover letter wizard for the terminal."""

try:
    from ._version import __version__
except ImportError:
    try:
        from importlib.metadata import version

        __version__ = version("cover-letter")
    except Exception:
        __version__ = "0.0.0+unknown"
