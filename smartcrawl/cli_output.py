"""Output and formatting helpers for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from .schema import CrawlResult


def result_to_json(result: CrawlResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


def _format_value(value: Any, indent: int) -> List[str]:
    pad = "  " * indent
    if isinstance(value, dict):
        lines = []
        for key, nested in value.items():
            if isinstance(nested, dict):
                lines.append(f"{pad}- **{key}**:")
                lines.extend(_format_value(nested, indent + 1))
            else:
                lines.append(f"{pad}- **{key}**: {_format_scalar(nested)}")
        return lines
    return [f"{pad}{_format_scalar(value)}"]


def _format_scalar(value: Any) -> str:
    if value is None:
        return "_null_"
    return " ".join(str(value).split())


def format_records_markdown(result: CrawlResult, url: str = "") -> str:
    """Format crawl records as markdown.

    Example output:
    # Records: https://example.com/list
    _2 records_

    ## 1
    - **title**: First
    - **detail**:
      - **body**: Hello

    ---
    """
    lines = []
    header = f"# Records: {url}" if url else "# Records"
    lines.append(header)
    lines.append(f"_{len(result.records)} records_")
    lines.append("")

    if not result.success:
        lines.append("**Crawl failed**")
        lines.append("")

    for i, record in enumerate(result.records, 1):
        lines.append(f"## {i}")
        lines.extend(_format_value(record, 0))
        lines.append("")
        lines.append("---")
        lines.append("")

    if result.errors:
        lines.append("## Errors")
        for error in result.errors:
            lines.append(f"- {error}")
        lines.append("")

    return "\n".join(lines)


def format_result(result: CrawlResult, fmt: str, url: str = "") -> str:
    if fmt == "markdown":
        return format_records_markdown(result, url)
    return result_to_json(result)


def write_output(
    result: CrawlResult,
    output: Optional[str],
    fmt: str = "json",
    url: str = "",
) -> None:
    """Write the result to ``output`` or stdout."""
    text = format_result(result, fmt, url)

    if output is None:
        print(text)
        return

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logging.info("Wrote %d record(s) to %s", len(result.records), path)

