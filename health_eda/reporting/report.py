"""
Write-up rendering: markdown document + JSON results sidecar.

A Report collects prose, tables and figures in order and writes

    <output_dir>/report.md
    <output_dir>/results.json
"""
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from health_eda.common.serialization import save_json
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class Section:
    kind: str  # "heading" | "text" | "table" | "figure"
    content: Any
    caption: Optional[str] = None


@dataclass
class Report:
    title: str
    sections: List[Section] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    def add_heading(self, text: str) -> 'Report':
        self.sections.append(Section('heading', text))
        return self

    def add_text(self, text: str) -> 'Report':
        self.sections.append(Section('text', text.strip()))
        return self

    def add_table(self, table: pd.DataFrame, caption: Optional[str] = None,
                  float_format: str = "{:.4g}") -> 'Report':
        self.sections.append(Section('table', (table, float_format), caption))
        return self

    def add_figure(self, path: Path, caption: Optional[str] = None) -> 'Report':
        self.sections.append(Section('figure', Path(path), caption))
        return self

    def add_metrics(self, key: str, value: Any) -> 'Report':
        self.metrics[key] = value
        return self

    def render(self, output_dir: Path) -> str:
        lines = [f"# {self.title}", "", f"_Generated {datetime.now():%Y-%m-%d %H:%M}_", ""]
        for section in self.sections:
            if section.kind == 'heading':
                lines += [f"## {section.content}", ""]
            elif section.kind == 'text':
                lines += [section.content, ""]
            elif section.kind == 'table':
                table, float_format = section.content
                if section.caption:
                    lines += [f"**{section.caption}**", ""]
                lines += ["```", _format_table(table, float_format), "```", ""]
            elif section.kind == 'figure':
                rel = _relative(section.content, output_dir)
                lines += [f"![{section.caption or rel}]({rel})", ""]
                if section.caption:
                    lines += [f"*{section.caption}*", ""]
        return "\n".join(lines)

    def write(self, output_dir: Path) -> Path:
        """Write report.md and results.json; returns the markdown path."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        md_path = output_dir / "report.md"
        md_path.write_text(self.render(output_dir))

        save_json({
            'title': self.title,
            'timestamp': datetime.now().isoformat(),
            'metrics': self.metrics,
        }, output_dir / "results.json")

        logger.info(f"Wrote {md_path}")
        return md_path


def _format_table(table: pd.DataFrame, float_format: str) -> str:
    return table.to_string(float_format=lambda v: float_format.format(v))


def _relative(path: Path, output_dir: Path) -> str:
    try:
        return str(Path(path).resolve().relative_to(Path(output_dir).resolve()))
    except ValueError:
        return str(path)
