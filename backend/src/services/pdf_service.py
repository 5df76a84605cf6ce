"""
PDF generation service for prescriptions using WeasyPrint.

Prescriptions are rendered from a Jinja2 HTML template so the downloadable PDF
and any HTML preview share one layout.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from weasyprint import HTML  # type: ignore

logger = logging.getLogger(__name__)


class PDFService:
    """
    Service for generating prescription PDFs.

    Uses WeasyPrint to convert HTML templates to PDF.
    """

    def __init__(self):
        """Initialize PDF service with template loader."""
        # backend/templates
        self.base_dir = Path(__file__).parent.parent.parent
        template_dir = self.base_dir / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml'])
        )

        def format_date_only(value: Any) -> str:
            """Format a datetime/ISO string as YYYY-MM-DD."""
            if isinstance(value, datetime):
                return value.strftime('%Y-%m-%d')
            try:
                return datetime.fromisoformat(str(value).replace('Z', '+00:00')).strftime('%Y-%m-%d')
            except ValueError as e:
                logger.warning(f"Error formatting date: {value}, error: {e}")
                return str(value)

        self.env.filters['format_date_only'] = format_date_only

    def generate_prescription_html(self, prescription_data: Dict[str, Any]) -> str:
        """Render the prescription template to HTML."""
        template = self.env.get_template('prescriptions/prescription.html')
        return template.render(prescription=prescription_data)

    def generate_prescription_pdf(self, prescription_data: Dict[str, Any]) -> bytes:
        """
        Generate a prescription PDF.

        Args:
            prescription_data: Snapshot with clinic, doctor, patient, medications,
                instructions and issued_at

        Returns:
            PDF file content as bytes

        Raises:
            Exception: If PDF generation fails
        """
        try:
            html_content = self.generate_prescription_html(prescription_data)
            # Title and author come from the template's <title> and <meta> tags
            pdf_bytes = HTML(string=html_content, base_url=str(self.base_dir)).write_pdf()  # type: ignore[reportUnknownMemberType]
            if pdf_bytes is None:
                raise Exception("PDF generation returned None")
            return pdf_bytes
        except Exception as e:
            logger.exception(f"Error generating prescription PDF: {e}")
            raise
