"""Error types raised by format handlers and the converter."""


class EbookError(Exception):
    """Base error for all ebook operations.

    Every subclass carries a short label and a hint suggesting what the user
    can do about it. The hint is part of ``str(err)`` so the CLI can print the
    exception as is.
    """

    label = "Ebook error"
    hint = "Check the input file and try again"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.label}: {message}\nHint: {self.hint}")


class EbookIOError(EbookError):
    label = "IO error"
    hint = "Check if the file exists and you have read permissions"


class ZipArchiveError(EbookError):
    label = "ZIP error"
    hint = "The archive may be corrupted or not a valid ZIP file"


class XmlError(EbookError):
    label = "XML parsing error"
    hint = "The file may be corrupted or have invalid XML structure"


class PdfError(EbookError):
    label = "PDF error"
    hint = "Try repairing the PDF with a dedicated PDF repair tool"


class UnsupportedFormatError(EbookError):
    label = "Unsupported format"
    hint = "Supported formats are EPUB, MOBI, AZW, PDF, FB2, CBZ, and TXT"


class InvalidMetadataError(EbookError):
    label = "Invalid metadata"
    hint = "Ensure all required metadata fields (title, author) are provided"


class ParseError(EbookError):
    label = "Parse error"
    hint = "The file structure may be corrupted or in an unexpected format"


class EncodingError(EbookError):
    label = "Encoding error"
    hint = "The file may use a text encoding that is not UTF-8 compatible"


class NotFoundError(EbookError):
    label = "Not found"
    hint = "Verify the required file or component exists in the ebook"


class InvalidStructureError(EbookError):
    label = "Invalid file structure"
    hint = (
        "The file may not be a valid ebook or is corrupted. "
        "Try using the 'repair' command"
    )


class NotSupportedError(EbookError):
    label = "Operation not supported"
    hint = "This feature is not yet implemented for this format"


class ImageProcessingError(EbookError):
    label = "Image processing error"
    hint = "Ensure the image is in a supported format (JPEG, PNG, GIF, WebP)"


class ConversionError(EbookError):
    label = "Conversion error"
    hint = (
        "Not all format conversions are supported. "
        "Check documentation for supported conversions"
    )


class EbookValidationError(EbookError):
    label = "Validation error"
    hint = "Use the 'repair' command to fix common issues"
