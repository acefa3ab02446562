"""dzassemble - Rebuild per-layer images from line-based DZI tile pyramids."""

__version__ = "0.1.0"


# libvips prints module-loading warnings (jxl, magick, poppler) straight to
# the C-level stderr when pyvips is first imported. None of those modules
# are needed for PNG tiles, so the first import happens here with fd 2
# pointed at /dev/null.
def _import_pyvips_quiet():
    """Import pyvips with C-level stderr suppressed."""
    import logging
    import os
    import sys

    _logger = logging.getLogger(__name__)
    os.environ.setdefault("VIPS_WARNING", "0")

    try:
        stderr_fd = sys.stderr.fileno()
    except (AttributeError, OSError, ValueError):
        # fileno() unavailable (IDLE, pytest capture) — import without suppression
        try:
            import pyvips  # noqa: F401
        except (ImportError, OSError):
            _logger.debug("pyvips not available")
        return

    try:
        old_stderr_fd = os.dup(stderr_fd)
        devnull = os.open(os.devnull, os.O_WRONLY)
        try:
            os.dup2(devnull, stderr_fd)
            import pyvips  # noqa: F401
        finally:
            os.dup2(old_stderr_fd, stderr_fd)
            os.close(old_stderr_fd)
            os.close(devnull)
    except (ImportError, OSError) as e:
        _logger.debug("pyvips import issue: %s", e)


_import_pyvips_quiet()
del _import_pyvips_quiet
