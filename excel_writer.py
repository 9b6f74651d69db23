"""Export a parsed message to an Excel workbook."""

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from analysis_tree import tree_for_result
from models import FormatTag


# Styling constants
HEADER_FONT = Font(name="Calibri", bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="2B5797", end_color="2B5797", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
PRIORITY_FONT = Font(name="Calibri", bold=True)
THIN_BORDER = Border(
    left=Side(style="thin", color="D0D0D0"),
    right=Side(style="thin", color="D0D0D0"),
    top=Side(style="thin", color="D0D0D0"),
    bottom=Side(style="thin", color="D0D0D0"),
)
ALT_ROW_FILL = PatternFill(start_color="EBF1F8", end_color="EBF1F8", fill_type="solid")

FORMAT_LABELS = {
    FormatTag.HL7V2: "HL7 v2.x",
    FormatTag.HL7V3: "HL7 v3 / CDA",
    FormatTag.FHIR: "FHIR",
    FormatTag.ASTM: "ASTM",
    FormatTag.JSON: "JSON",
    FormatTag.XML: "XML",
}


def style_header(ws, num_cols):
    """Apply header styling to the first row."""
    for col in range(1, num_cols + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = THIN_BORDER


def style_data(ws, num_rows, num_cols):
    """Apply data styling: alternating rows and borders."""
    for row in range(2, num_rows + 1):
        for col in range(1, num_cols + 1):
            cell = ws.cell(row=row, column=col)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(vertical="center")
            if (row % 2) == 0:
                cell.fill = ALT_ROW_FILL


def auto_width(ws, num_cols, max_width=60):
    """Auto-size column widths based on content."""
    for col in range(1, num_cols + 1):
        max_len = 0
        for row in ws.iter_rows(min_col=col, max_col=col, values_only=True):
            for value in row:
                max_len = max(max_len, len(str(value)) if value is not None else 0)
        adjusted = min(max_len + 3, max_width)
        ws.column_dimensions[get_column_letter(col)].width = max(adjusted, 10)


def write_sheet(ws, headers, rows):
    """Write a complete sheet with headers, data, and styling."""
    for col_idx, header in enumerate(headers, 1):
        ws.cell(row=1, column=col_idx, value=header)

    for row_idx, row_data in enumerate(rows, 2):
        for col_idx, value in enumerate(row_data, 1):
            if isinstance(value, str):
                value = ILLEGAL_CHARACTERS_RE.sub("", value)
            ws.cell(row=row_idx, column=col_idx, value=value)

    num_cols = len(headers)
    num_rows = len(rows) + 1
    style_header(ws, num_cols)
    style_data(ws, num_rows, num_cols)
    auto_width(ws, num_cols)
    ws.freeze_panes = "A2"


def _cell(value):
    """Flatten a value into something a spreadsheet cell can hold."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


def summary_rows(result):
    rows = [
        ["Format", FORMAT_LABELS.get(result.format, str(result.format))],
        ["Version", result.version or ""],
    ]
    for key, value in result.analysis.items():
        if key in ("structure", "detailedStructure", "segments", "records"):
            continue
        rows.append([key, _cell(value)])
    return rows


def record_rows(result):
    rows = []
    for idx, record in enumerate(result.records, 1):
        for field in record.non_empty_fields():
            rows.append([idx, record.type, record.name, field.position, field.name, field.value])
    return rows


def structure_sheet(result):
    """Headers and rows for the top-level ``analysis.structure`` listing."""
    structure = result.analysis.get("structure") or []
    if not structure:
        return ["Name", "Value"], []
    headers = list(structure[0].keys())
    rows = [[_cell(entry.get(h)) for h in headers] for entry in structure]
    return headers, rows


def tree_rows(node, depth=0, rows=None):
    """Depth-first walk of an analysis tree into (indented key, type, value, priority) rows."""
    rows = [] if rows is None else rows
    rows.append(["  " * depth + node.key, node.type, node.value or "", "Yes" if node.is_priority else ""])
    for child in node.children:
        tree_rows(child, depth + 1, rows)
    return rows


def write_result_excel(result, output):
    """Write a ParseResult to ``output`` (a path or a binary file object).

    Sheets: Summary, Segments/Records (hl7v2 and astm only), Structure, Tree.
    """
    wb = Workbook()

    ws_summary = wb.active
    ws_summary.title = "Summary"
    write_sheet(ws_summary, ["Field", "Value"], summary_rows(result))

    if result.records:
        title = "Segments" if result.format is FormatTag.HL7V2 else "Records"
        ws_records = wb.create_sheet(title)
        write_sheet(
            ws_records,
            ["#", "Code", "Name", "Position", "Field Name", "Value"],
            record_rows(result),
        )

    ws_structure = wb.create_sheet("Structure")
    headers, rows = structure_sheet(result)
    write_sheet(ws_structure, headers, rows)

    ws_tree = wb.create_sheet("Tree")
    tree = tree_rows(tree_for_result(result))
    write_sheet(ws_tree, ["Key", "Type", "Value", "Priority"], tree)
    for row_idx, row in enumerate(tree, 2):
        if row[3]:
            ws_tree.cell(row=row_idx, column=1).font = PRIORITY_FONT

    wb.save(output)
    return output
