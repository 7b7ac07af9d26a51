"""
Text formatting of simulation results.
"""

from typing import Any, List, Optional

DEVIATION_FLAG = 0.05


class _TableFormatter:
    """Fixed-width plain-text tables."""

    def _create_table(self, headers: List[str], rows: List[List[str]], col_widths: Optional[List[int]] = None) -> str:
        if col_widths is None:
            col_widths = [max(len(str(h)), *(len(str(row[i])) for row in rows)) if rows else len(str(h)) for i, h in enumerate(headers)]

        lines = [" ".join(f"{str(h):<{w}}" for h, w in zip(headers, col_widths))]
        lines.append(" ".join("-" * w for w in col_widths))
        for row in rows:
            lines.append(" ".join(f"{str(cell):<{w}}" for cell, w in zip(row, col_widths)))
        return "\n".join(lines)

    def _format_value(self, value: Any, fmt: Optional[str] = None) -> str:
        if isinstance(value, float):
            if fmt is not None:
                return format(value, fmt)
            if value != 0 and abs(value) < 0.001:
                return f"{value:.6f}"
            return f"{value:.4f}"
        return str(value)


def _format_variance_report(report, space) -> str:
    """Render a ``VarianceReport`` as a table of budgeted vs realized shares.

    Parts whose realized share deviates from the budget by more than
    ``DEVIATION_FLAG`` are marked with ``!``.
    """
    tf = _TableFormatter()
    headers = ["Component", "Budgeted", "Realized", "Scale", ""]
    rows = []
    for part, realized in report.realized.items():
        budgeted = report.budgeted[part]
        flag = "!" if abs(realized - budgeted) > DEVIATION_FLAG else ""
        scale = report.scale_factors.get(part)
        rows.append(
            [
                part,
                tf._format_value(budgeted),
                tf._format_value(realized),
                tf._format_value(scale) if scale is not None else "-",
                flag,
            ]
        )
    for group, realized in report.group_realized.items():
        budgeted = report.group_budgeted[group]
        flag = "!" if abs(realized - budgeted) > DEVIATION_FLAG else ""
        rows.append([f"total {group}", tf._format_value(budgeted), tf._format_value(realized), "-", flag])

    title = f"Phenotype Simulation Results (N={space.n_samples}, P={space.n_traits})"
    lines = [
        "=" * len(title),
        title,
        "=" * len(title),
        tf._create_table(headers, rows),
        "",
        f"Phenotype variance: {tf._format_value(float(report.phenotype_variance))}",
        f"Max deviation from budget: {tf._format_value(report.max_deviation())}",
    ]
    return "\n".join(lines)
