# safestock/utils/issuance_slip_pdf.py
"""
Utility to generate the printable issuance slip for a finalized OUT batch
using reportlab. Produces no state.
"""

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from safestock.schemas.basket import BasketEntry, IssuanceBatch
from safestock.schemas.inventory import ItemType, LogEntry
from safestock.utils.datetime_utils import from_ms

# The paper form always shows this many item rows.
SLIP_ROWS = 15
DEFAULT_UNIT = "pcs"
# Built-in CID font covering Traditional Chinese item and department names.
CJK_FONT = "MSung-Light"


def _register_fonts() -> None:
    if CJK_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(CJK_FONT))


def batch_from_log(log: LogEntry, item_type: ItemType = ItemType.CONSUMABLE) -> IssuanceBatch:
    """
    One-line batch for reprinting a single historical OUT entry. Only the
    log's own denormalized fields are used, so it works for deleted items.
    """
    return IssuanceBatch(
        id=log.id,
        mode=log.type,
        dept=log.dept,
        person=log.person,
        reason=log.reason,
        entries=[
            BasketEntry(
                item_id=log.item_id,
                quantity=log.quantity,
                name=log.item_name,
                unit=log.unit or DEFAULT_UNIT,
                spec=log.spec,
                item_type=item_type,
            )
        ],
        timestamp=log.timestamp,
    )


def generate_issuance_slip_pdf(
    batch: IssuanceBatch,
    organization_name: str = "Maintenance Division",
) -> BytesIO:
    """
    Generate the slip PDF. Returns a BytesIO buffer positioned at 0.

    The "equipment loan" box is ticked when any entry is EQUIPMENT, the
    "consumable issue" box when none is.
    """
    _register_fonts()
    buffer = BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=10 * mm,
        title=f"Issuance slip {batch.id}",
    )

    elements = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "SlipTitle",
        parent=styles["Heading1"],
        fontSize=20,
        alignment=1,
        textColor=colors.black,
        spaceAfter=8,
        fontName="Helvetica-Bold",
    )
    normal_style = ParagraphStyle(
        "SlipNormal",
        parent=styles["Normal"],
        fontName=CJK_FONT,
        fontSize=11,
        textColor=colors.black,
        spaceAfter=4,
    )
    small_style = ParagraphStyle(
        "SlipSmall",
        parent=styles["Normal"],
        fontSize=8,
        alignment=2,
        textColor=colors.grey,
    )

    elements.append(Paragraph(f"No.: {batch.id}", small_style))
    elements.append(Paragraph(escape(organization_name), title_style))

    is_equipment = any(e.item_type == ItemType.EQUIPMENT for e in batch.entries)
    equip_box = "[X]" if is_equipment else "[ ]"
    consum_box = "[ ]" if is_equipment else "[X]"
    elements.append(
        Paragraph(
            f"{equip_box} Equipment loan slip &nbsp;&nbsp;&nbsp; {consum_box} Consumable issue slip",
            ParagraphStyle("SlipBoxes", parent=normal_style, alignment=1, fontSize=13),
        )
    )
    elements.append(Spacer(1, 4 * mm))

    date_str = from_ms(batch.timestamp).astimezone().strftime("%Y-%m-%d")
    header_table = Table(
        [[f"Department: {batch.dept}", f"Date: {date_str}"]],
        colWidths=[115 * mm, 55 * mm],
    )
    header_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), CJK_FONT),
                ("FONTSIZE", (0, 0), (-1, -1), 11),
                ("ALIGN", (1, 0), (1, 0), "RIGHT"),
            ]
        )
    )
    elements.append(header_table)
    elements.append(Spacer(1, 3 * mm))

    rows = [["Name", "Spec", "Unit", "Qty", "Remarks"]]
    for entry in batch.entries:
        rows.append([entry.name, entry.spec or "", entry.unit, str(entry.quantity), ""])
    rows.extend([["", "", "", "", ""]] * max(0, SLIP_ROWS - len(batch.entries)))

    item_table = Table(
        rows,
        colWidths=[60 * mm, 40 * mm, 20 * mm, 20 * mm, 30 * mm],
        rowHeights=[9 * mm] * len(rows),
    )
    item_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.Color(0.95, 0.95, 0.95)),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, 1), (-1, -1), CJK_FONT),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("GRID", (0, 0), (-1, -1), 1, colors.black),
                ("BOX", (0, 0), (-1, -1), 2, colors.black),
            ]
        )
    )
    elements.append(item_table)
    elements.append(Spacer(1, 6 * mm))

    if batch.person or batch.reason:
        elements.append(Paragraph(f"Requested by: {escape(batch.person)}", normal_style))
        if batch.reason:
            elements.append(Paragraph(f"Reason: {escape(batch.reason)}", normal_style))
        elements.append(Spacer(1, 4 * mm))

    signature_table = Table(
        [
            ["Requesting department:", "", "", "Managing department:", "", ""],
            ["Clerk:", "Section chief:", "Manager:", "Clerk:", "Section chief:", "Manager:"],
        ],
        colWidths=[28 * mm] * 6,
        rowHeights=[8 * mm, 14 * mm],
    )
    signature_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
            ]
        )
    )
    elements.append(signature_table)

    doc.build(elements)
    buffer.seek(0)
    return buffer
