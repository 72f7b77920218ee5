"""Formatting utilities shared by the tree renderers."""

KIB_PER_MIB = 1024
KIB_PER_GIB = 1024 * 1024


def format_size(kib: int) -> str:
    """Format a size in KiB using the largest unit that keeps it above 1.

    Returns:
        - Below 1 MiB: whole KiB, e.g. "512KiB"
        - Below 1 GiB: two decimals, e.g. "1.50MiB"
        - Otherwise: two decimals, e.g. "2.00GiB"
    """
    if kib < KIB_PER_MIB:
        return f"{kib}KiB"
    if kib < KIB_PER_GIB:
        return f"{kib / KIB_PER_MIB:.2f}MiB"
    return f"{kib / KIB_PER_GIB:.2f}GiB"


def format_percent(fraction: float) -> str:
    """Format a fraction as a percentage with two decimals ("12.50%")."""
    return f"{fraction * 100:.2f}%"
