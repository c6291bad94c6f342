"""Plain-text extraction for uploaded files.

PDF pages are read with pypdf, DOCX paragraphs with python-docx, and
everything else is decoded as UTF-8. When a parser chokes on a file the raw
bytes are decoded instead, so a malformed upload degrades to best-effort text
rather than failing the request.
"""

import asyncio
import io
from pathlib import Path

import docx
from pypdf import PdfReader

from shared.helper.HelperConfig import HelperConfig


class TextExtractor:
    """Turns a stored upload plus its original file name into plain text."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    async def extract_text(self, file_path: Path, file_name: str | None = None) -> str:
        """Extract text from a file on disk.

        Args:
            file_path (Path): Location of the stored upload.
            file_name (str | None): Original upload name; its extension selects
                the parser. Falls back to file_path's name.

        Returns:
            str: The extracted text (possibly empty).

        Raises:
            OSError: If the file cannot be read at all.
        """
        data = await asyncio.to_thread(Path(file_path).read_bytes)
        return await asyncio.to_thread(self.extract_from_bytes, data, file_name or Path(file_path).name)

    def extract_from_bytes(self, data: bytes, file_name: str) -> str:
        suffix = Path(file_name).suffix.lower()
        if suffix == ".pdf":
            return self._parse_or_decode(self._read_pdf, data, "PDF", file_name)
        if suffix == ".docx":
            return self._parse_or_decode(self._read_docx, data, "DOCX", file_name)
        return self._decode(data)

    ##########################################
    ############### PARSERS ##################
    ##########################################

    def _parse_or_decode(self, parser, data: bytes, kind: str, file_name: str) -> str:
        try:
            return parser(data)
        except Exception as exc:  # noqa: BLE001 - any parser failure falls back to raw text
            self.logging.error("%s parse failed for %r (fallback to raw): %s", kind, file_name, exc)
            return self._decode(data)

    @staticmethod
    def _read_pdf(data: bytes) -> str:
        reader = PdfReader(io.BytesIO(data))
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    @staticmethod
    def _read_docx(data: bytes) -> str:
        document = docx.Document(io.BytesIO(data))
        return "\n".join(paragraph.text for paragraph in document.paragraphs)

    @staticmethod
    def _decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")
