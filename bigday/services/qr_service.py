"""
QR code generation service
"""

import io
from urllib.parse import quote
import qrcode

from bigday.schemas.config import TableConfig

class QRService:
    """Service for generating QR codes"""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def get_table_url(self, table: TableConfig) -> str:
        """Get the URL that the table's QR code will open"""
        url = f"{self.base_url}/table/{quote(table.id, safe='')}"
        if table.token:
            url += f"?token={quote(table.token, safe='')}"
        return url

    def generate_table_qr(self, table: TableConfig, format: str = 'PNG') -> bytes:
        """Generate QR code for a table's photo page"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(self.get_table_url(table))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()
