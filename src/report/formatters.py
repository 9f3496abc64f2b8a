"""
Report Formatting Module.

Renders inventory records as fixed-width table rows, CSV rows or JSON. The
streaming helpers format individual rows for the reporter; ``write_report``
renders a complete result set in one pass.
"""

import json
from typing import List, Sequence, TextIO

from config import OutputFormat, logger
from miners.models import RepositoryData

CSV_HEADER = (
    "organization,repository,visibility,collaborators,languages,"
    "last_accessed,active_prs,prs_2w,prs_1m"
)

TABLE_HEADERS = [
    "Organization",
    "Repository",
    "Visibility",
    "Collaborators",
    "Languages",
    "Last Accessed",
    "Active PRs",
    "2W PRs",
    "1M PRs",
]

# Column widths used while streaming, when the full result set is unknown
STREAM_COLUMN_WIDTHS = [15, 30, 10, 40, 20, 25, 10, 6, 6]

# Minimum widths of the three count columns
COUNT_COLUMN_WIDTHS = [10, 6, 6]


def record_values(item: RepositoryData) -> List[str]:
    """Column values of a record in table order."""
    return [
        item.organization,
        item.repository,
        item.visibility,
        item.collaborators,
        item.languages,
        item.last_accessed,
        str(item.active_prs),
        str(item.prs_2w),
        str(item.prs_1m),
    ]


def escape_csv_field(value: str) -> str:
    """
    Quote a CSV field if it contains a comma, quote or newline.

    Embedded quotes are doubled: ``a,b"c`` becomes ``"a,b""c"``.
    """
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def format_csv_row(item: RepositoryData) -> str:
    return ",".join(escape_csv_field(value) for value in record_values(item))


def format_json_row(item: RepositoryData) -> str:
    return item.model_dump_json()


def table_separator(widths: Sequence[int]) -> str:
    return "+" + "+".join("-" * (width + 2) for width in widths) + "+"


def format_table_row(values: Sequence[str], widths: Sequence[int]) -> str:
    """Pad each value to its column width and frame the row with pipes."""
    cells = [value.ljust(width) for value, width in zip(values, widths)]
    return "| " + " | ".join(cells) + " |"


def table_header_lines(widths: Sequence[int] = STREAM_COLUMN_WIDTHS) -> List[str]:
    """Separator, header row and separator framing the top of a table."""
    separator = table_separator(widths)
    return [separator, format_table_row(TABLE_HEADERS, widths), separator]


def content_widths(data: Sequence[RepositoryData]) -> List[int]:
    """
    Column widths fitting both headers and content.

    Args:
        data (Sequence[RepositoryData]): Records to be rendered

    Returns:
        List[int]: Width per column
    """
    rows = [record_values(item) for item in data]
    widths = []
    for index, header in enumerate(TABLE_HEADERS[:6]):
        data_width = max((len(row[index]) for row in rows), default=0)
        widths.append(max(data_width, len(header)))
    for header, minimum in zip(TABLE_HEADERS[6:], COUNT_COLUMN_WIDTHS):
        widths.append(max(minimum, len(header)))
    return widths


def write_report(
    data: Sequence[RepositoryData], output_format: OutputFormat, stream: TextIO
) -> None:
    """
    Write a complete result set in one pass.

    Tables size their columns to the content, JSON is written as a single
    indented array, CSV as header plus rows. For callers that hold the whole
    result set in memory; the CLI streams batches through ``Reporter``.

    Args:
        data (Sequence[RepositoryData]): Records to write
        output_format (OutputFormat): table, json or csv
        stream (TextIO): Destination
    """
    if output_format == "json":
        payload = [item.model_dump() for item in data]
        stream.write(json.dumps(payload, indent=2) + "\n")
        return

    if output_format == "csv":
        stream.write(CSV_HEADER + "\n")
        for item in data:
            stream.write(format_csv_row(item) + "\n")
        return

    widths = content_widths(data)
    lines = table_header_lines(widths)
    lines.extend(format_table_row(record_values(item), widths) for item in data)
    lines.append(table_separator(widths))
    stream.write("\n".join(lines) + "\n")


def save_report(
    path: str, output_format: OutputFormat, data: Sequence[RepositoryData]
) -> None:
    """Write a complete result set to a file, see ``write_report``."""
    with open(path, "w", encoding="utf-8") as f:
        write_report(data, output_format, f)
    logger.info({"message": "Report saved", "file_path": path})
