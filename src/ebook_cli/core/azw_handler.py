"""AZW/AZW3 handling, sharing the MOBI header and text model."""

from ebook_cli.core.mobi_handler import MobiHandler


class AzwHandler(MobiHandler):
    """Kindle AZW files: same layout and contract as MOBI."""

    FORMAT = "azw"
