"""
File Signatures
===============
Magic numbers for the image formats accepted on upload.
"""

from dataclasses import dataclass
from typing import Tuple, Dict


@dataclass(frozen=True)
class MagicNumber:
    """A format identified by one or more byte sequences at fixed offsets."""
    name: str
    parts: Tuple[Tuple[int, bytes], ...]
    mime_type: str
    extensions: Tuple[str, ...]

    def matches(self, header: bytes) -> bool:
        return all(
            header[offset:offset + len(signature)] == signature
            for offset, signature in self.parts
        )


MAGIC_NUMBERS: Dict[str, MagicNumber] = {
    m.name: m
    for m in (
        MagicNumber("JPEG", ((0, b"\xff\xd8\xff"),), "image/jpeg", (".jpg", ".jpeg")),
        MagicNumber("PNG", ((0, b"\x89PNG\r\n\x1a\n"),), "image/png", (".png",)),
        MagicNumber("GIF_87A", ((0, b"GIF87a"),), "image/gif", (".gif",)),
        MagicNumber("GIF_89A", ((0, b"GIF89a"),), "image/gif", (".gif",)),
        # RIFF container with the WEBP form type
        MagicNumber("WEBP", ((0, b"RIFF"), (8, b"WEBP")), "image/webp", (".webp",)),
        MagicNumber("BMP", ((0, b"BM"),), "image/bmp", (".bmp",)),
        MagicNumber("TIFF_LE", ((0, b"II*\x00"),), "image/tiff", (".tiff", ".tif")),
        MagicNumber("TIFF_BE", ((0, b"MM\x00*"),), "image/tiff", (".tiff", ".tif")),
        MagicNumber("ICO", ((0, b"\x00\x00\x01\x00"),), "image/x-icon", (".ico",)),
        MagicNumber("AVIF", ((4, b"ftypavif"),), "image/avif", (".avif",)),
    )
}

# Bytes read from the start of a file for detection
HEADER_LENGTH = 12

DANGEROUS_EXTENSIONS = frozenset({
    ".exe", ".bat", ".cmd", ".com", ".pif", ".scr", ".vbs", ".js", ".jse",
    ".wsf", ".wsh", ".msi", ".msp", ".hta", ".cpl", ".jar", ".app", ".deb",
    ".rpm", ".dmg", ".pkg", ".run", ".sh", ".bash", ".ps1", ".psm1", ".psd1",
    ".php", ".php3", ".php4", ".php5", ".phtml", ".asp", ".aspx", ".jsp",
    ".cgi", ".pl", ".py", ".rb", ".dll", ".so", ".dylib",
})

# Client-claimed MIME types accepted for a detected type
MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/vnd.microsoft.icon": "image/x-icon",
}


def extensions_for(mime_type: str) -> Tuple[str, ...]:
    """All extensions associated with a detected MIME type."""
    found = []
    for magic in MAGIC_NUMBERS.values():
        if magic.mime_type == mime_type:
            found.extend(ext for ext in magic.extensions if ext not in found)
    return tuple(found)
