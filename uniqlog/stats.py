"""Per-stream compaction summary."""


class CompactionStats:
    """Counters describing one compacted input stream.

    ``consumed`` input lines read (after the short-line filter), ``emitted``
    input lines accounted for by output, ``printed`` physical output lines
    standing for input lines, ``blocks`` collapsed blocks and
    ``false_starts`` patterns that broke before a full cycle.
    """

    def __init__(self, consumed=0, emitted=0, printed=0, blocks=0, false_starts=0):
        self.consumed = consumed
        self.emitted = emitted
        self.printed = printed
        self.blocks = blocks
        self.false_starts = false_starts

    @property
    def saved(self) -> int:
        return self.emitted - self.printed

    @property
    def ratio(self) -> float:
        return round(self.saved / self.emitted * 100, 1) if self.emitted > 0 else 0.0

    def as_dict(self) -> dict:
        return {
            "consumed": self.consumed,
            "emitted": self.emitted,
            "printed": self.printed,
            "blocks": self.blocks,
            "false_starts": self.false_starts,
            "saved": self.saved,
            "ratio": self.ratio,
        }

    def __repr__(self):
        fields = ", ".join(f"{k}={v}" for k, v in self.as_dict().items())
        return f"CompactionStats({fields})"


def _format_lines(n: int) -> str:
    """Human-readable line count."""
    if n == 1:
        return "1 line"
    if n < 10_000:
        return f"{n} lines"
    if n < 1_000_000:
        return f"{n / 1_000:.1f}k lines"
    return f"{n / 1_000_000:.1f}M lines"


def format_summary(name: str, stats: CompactionStats) -> str:
    """One-line summary of a compacted stream, for stderr."""
    summary = (
        f"uniqlog: {name}: {_format_lines(stats.consumed)} read, "
        f"{_format_lines(stats.printed)} printed"
    )
    if stats.blocks:
        summary += f", {stats.blocks} block{'s' if stats.blocks != 1 else ''} collapsed"
    summary += f", saved {_format_lines(stats.saved)} ({stats.ratio}%)"
    return summary
