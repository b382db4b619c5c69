from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError
import io

from core.exceptions import ValidationError

PDF_TYPES = {"application/pdf"}
TEXT_TYPES = {"text/plain", "text/markdown", "text/csv", "application/json"}
TEXT_EXTENSIONS = (".txt", ".md", ".markdown", ".csv", ".json")


def extract_text_from_pdf(file_bytes: bytes) -> str:
    """Extract all text content from a PDF file"""
    text = ""
    try:
        reader = PdfReader(io.BytesIO(file_bytes))
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text += page_text + "\n"
    except PdfReadError as e:
        raise ValidationError("Could not read the PDF file") from e

    if not text.strip():
        raise ValidationError("Could not extract text from the PDF. The file may be image-based or empty.")

    return text.strip()


def extract_material_text(file_name: str, content_type: str, file_bytes: bytes) -> str:
    """Return the text of an uploaded study material (PDF or plain text)."""
    name = (file_name or "").lower()
    if content_type in PDF_TYPES or name.endswith(".pdf"):
        return extract_text_from_pdf(file_bytes)

    if content_type in TEXT_TYPES or name.endswith(TEXT_EXTENSIONS):
        try:
            text = file_bytes.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("Text files must be UTF-8 encoded")
        if not text.strip():
            raise ValidationError("File is empty")
        return text.strip()

    raise ValidationError("Only PDF and plain text files are accepted")
