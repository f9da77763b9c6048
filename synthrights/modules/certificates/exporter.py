"""
Certificate export to JSON, HTML and PDF.

All three formats render from the signed ``metadata_json`` snapshot, so an
export never needs the live work row.
"""

from __future__ import annotations

import html
import io
import json
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fpdf import FPDF  # type: ignore[import-untyped]
from fpdf.enums import XPos, YPos  # type: ignore[import-untyped]

from synthrights.core.config import Settings, get_settings
from synthrights.core.errors import ValidationError
from synthrights.core.logging import get_logger
from synthrights.db.models import Certificate
from synthrights.modules.certificates.qr import qr_data_uri, render_qr_png
from synthrights.modules.certificates.schemas import WatermarkOptions

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("pdf", "json", "html")

CONTENT_TYPES = {
    "json": "application/json",
    "html": "text/html; charset=utf-8",
    "pdf": "application/pdf",
}

_ACCENT_RGB = (99, 102, 241)


@dataclass(frozen=True)
class Watermark:
    enabled: bool
    text: str
    opacity: float
    angle: float
    color: str
    font_size: int

    @classmethod
    def resolve(cls, options: WatermarkOptions | None, settings: Settings) -> Watermark:
        """Merge request overrides onto the configured defaults."""
        options = options or WatermarkOptions()
        return cls(
            enabled=options.enabled,
            text=options.text or settings.watermark_text,
            opacity=settings.watermark_opacity if options.opacity is None else options.opacity,
            angle=settings.watermark_angle if options.angle is None else options.angle,
            color=options.color or settings.watermark_color,
            font_size=options.font_size or settings.watermark_font_size,
        )

    @property
    def rgb(self) -> tuple[int, int, int]:
        value = self.color.lstrip("#")
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def safe_filename_stem(value: str) -> str:
    stem = re.sub(r"[^a-zA-Z0-9]+", "-", value).strip("-").lower()
    return stem[:80] or "untitled"


def _latin1(value: Any) -> str:
    # Core PDF fonts only cover latin-1.
    return str(value).encode("latin-1", "replace").decode("latin-1")


def _display_date(value: str | None) -> str:
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value).strftime("%B %d, %Y")
    except ValueError:
        return value


class CertificateExporter:
    """Render a certificate as a downloadable artifact."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def export(
        self,
        certificate: Certificate,
        format: str,
        watermark: WatermarkOptions | None = None,
    ) -> bytes:
        normalized = (format or "").strip().lower()
        if normalized == "json":
            return self.export_json(certificate)
        if normalized == "html":
            return self.export_html(certificate)
        if normalized == "pdf":
            return self.export_pdf(certificate, Watermark.resolve(watermark, self._settings))
        raise ValidationError(
            f"Invalid format '{format}'. Supported formats: {', '.join(SUPPORTED_FORMATS)}",
            format=format,
        )

    @staticmethod
    def content_type(format: str) -> str:
        return CONTENT_TYPES[format]

    @staticmethod
    def filename(certificate: Certificate, format: str) -> str:
        return f"certificate-{certificate.id}.{format}"

    @staticmethod
    def archive_member_name(certificate: Certificate, format: str) -> str:
        title = str(certificate.metadata_json.get("title") or certificate.id)
        return f"certificates/{safe_filename_stem(title)}-certificate.{format}"

    # -- json ----------------------------------------------------------------

    def export_json(self, certificate: Certificate) -> bytes:
        payload = {
            "metadata": certificate.metadata_json,
            "signature": certificate.signature,
            "signatureAlgorithm": certificate.signature_algorithm,
            "signingKeyId": certificate.signing_key_id,
            "certificateVersion": self._settings.certificate_version,
            "publicUrl": certificate.public_url,
        }
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")

    # -- html ----------------------------------------------------------------

    def _summary_rows(self, certificate: Certificate) -> list[tuple[str, str]]:
        metadata = certificate.metadata_json
        rows = [
            ("Certificate ID", certificate.id),
            ("Owner", str(metadata.get("ownerName") or "Unknown")),
            ("Work Type", str(metadata.get("type") or "-").capitalize()),
            ("Certificate Type", str(metadata.get("certificateType") or "standard").capitalize()),
            ("Issued", _display_date(metadata.get("issuedAt"))),
            ("Registered", _display_date(metadata.get("registeredAt"))),
            ("Metadata Hash", str(metadata.get("metadataHash") or "-")),
        ]
        if metadata.get("expiresAt"):
            rows.append(("Expires", _display_date(metadata.get("expiresAt"))))
        if metadata.get("transactionId"):
            rows.append(("Transaction", str(metadata["transactionId"])))
            rows.append(("Block", str(metadata.get("blockNumber") or "-")))
            rows.append(("Network", str(metadata.get("networkName") or "-")))
        if certificate.is_revoked:
            rows.append(("Status", "REVOKED"))
        return rows

    def export_html(self, certificate: Certificate) -> bytes:
        metadata = certificate.metadata_json
        verification_url = str(metadata.get("verificationUrl") or certificate.public_url)
        rows = "\n".join(
            f"        <tr><th>{html.escape(label)}</th><td>{html.escape(value)}</td></tr>"
            for label, value in self._summary_rows(certificate)
        )
        document = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Certificate {html.escape(certificate.id)}</title>
  <style>
    body {{ font-family: Helvetica, Arial, sans-serif; color: #1f2937; margin: 0; }}
    .certificate {{ border: 6px double #6366f1; margin: 32px; padding: 40px; }}
    h1 {{ color: #6366f1; text-align: center; letter-spacing: 2px; }}
    h2 {{ text-align: center; font-weight: normal; }}
    table {{ margin: 24px auto; border-collapse: collapse; }}
    th {{ text-align: left; padding: 4px 16px; color: #6b7280; }}
    td {{ padding: 4px 16px; font-family: monospace; word-break: break-all; }}
    .qr {{ text-align: center; }}
    .signature {{ font-size: 10px; color: #6b7280; word-break: break-all; }}
  </style>
</head>
<body>
  <div class="certificate">
    <h1>CERTIFICATE OF REGISTRATION</h1>
    <h2>{html.escape(str(metadata.get("title") or "Untitled"))}</h2>
    <table>
{rows}
    </table>
    <div class="qr">
      <img src="{qr_data_uri(verification_url)}" alt="[QR Code]" width="160" height="160">
      <p>[QR Code] Verify at <a href="{html.escape(verification_url)}">{html.escape(verification_url)}</a></p>
    </div>
    <p class="signature">Signature ({html.escape(certificate.signature_algorithm)}): {html.escape(certificate.signature)}</p>
  </div>
</body>
</html>
"""
        return document.encode("utf-8")

    # -- pdf -----------------------------------------------------------------

    def export_pdf(self, certificate: Certificate, watermark: Watermark) -> bytes:
        metadata = certificate.metadata_json
        verification_url = str(metadata.get("verificationUrl") or certificate.public_url)

        pdf = FPDF(orientation="landscape", format="A4")
        pdf.set_auto_page_break(auto=False)
        pdf.set_title(_latin1(f"Certificate {certificate.id}"))
        pdf.set_author(self._settings.project_name)
        pdf.add_page()

        pdf.set_draw_color(*_ACCENT_RGB)
        pdf.set_line_width(1.2)
        pdf.rect(8, 8, pdf.w - 16, pdf.h - 16)

        pdf.set_y(20)
        pdf.set_text_color(*_ACCENT_RGB)
        pdf.set_font("Helvetica", "B", 26)
        pdf.cell(
            0,
            14,
            "CERTIFICATE OF REGISTRATION",
            align="C",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )

        pdf.set_text_color(31, 41, 55)
        pdf.set_font("Helvetica", "", 18)
        pdf.cell(
            0,
            12,
            _latin1(metadata.get("title") or "Untitled"),
            align="C",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        pdf.ln(6)

        label_width = 45
        value_width = pdf.w - pdf.l_margin - pdf.r_margin - label_width - 60
        for label, value in self._summary_rows(certificate):
            pdf.set_font("Helvetica", "B", 10)
            pdf.cell(label_width, 7, _latin1(label))
            pdf.set_font("Courier", "", 9)
            pdf.multi_cell(value_width, 7, _latin1(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        qr_size = 42
        pdf.image(
            io.BytesIO(render_qr_png(verification_url)),
            x=pdf.w - pdf.r_margin - qr_size - 6,
            y=pdf.h - qr_size - 30,
            w=qr_size,
            h=qr_size,
        )
        pdf.set_font("Helvetica", "", 8)
        pdf.set_xy(pdf.w - pdf.r_margin - 90, pdf.h - 26)
        pdf.cell(84, 5, _latin1(verification_url), align="R")

        pdf.set_xy(pdf.l_margin + 6, pdf.h - 34)
        pdf.set_font("Courier", "", 7)
        pdf.multi_cell(
            pdf.w - pdf.l_margin - pdf.r_margin - qr_size - 30,
            3.5,
            _latin1(f"Signature ({certificate.signature_algorithm}): {certificate.signature}"),
        )

        if watermark.enabled and watermark.text:
            self._draw_watermark(pdf, watermark)

        return bytes(pdf.output())

    @staticmethod
    def _draw_watermark(pdf: FPDF, watermark: Watermark) -> None:
        center_x, center_y = pdf.w / 2, pdf.h / 2
        with pdf.local_context(fill_opacity=watermark.opacity):
            pdf.set_text_color(*watermark.rgb)
            pdf.set_font("Helvetica", "B", watermark.font_size)
            text = _latin1(watermark.text)
            width = pdf.get_string_width(text)
            # CSS-style angles turn clockwise; fpdf2 rotates counter-clockwise.
            with pdf.rotation(angle=-watermark.angle, x=center_x, y=center_y):
                pdf.text(center_x - width / 2, center_y, text)
