"""Terminal output for compacted logs: verbatim lines, collapsed blocks, diffs."""

import sys
import time

COLOR_WHITE = "\033[1;38m"
COLOR_RED = "\033[1;31m"
COLOR_MAGENTA = "\033[1;35m"
COLOR_GRAY = "\033[1;90m"
COLOR_BG_DARK = "\033[1;100m"
COLOR_RESET = "\033[0m"


class Emitter:
    """Writes output lines and keeps the accounting of input lines they cover.

    ``emitted`` counts input lines accounted for by some output, including
    the repetitions folded into a block footer. ``printed`` counts the
    physical output lines that stand for input lines. Progress notices and
    debug diagnostics count towards neither.
    """

    def __init__(self, out=None, color: bool = True, quiet_period: float = 2.0, clock=None):
        self.out = out if out is not None else sys.stdout
        self.color = color
        self.quiet_period = quiet_period
        self._clock = clock or time.monotonic
        self.emitted = 0
        self.printed = 0
        self.blocks = 0
        self.last_output = self._clock()

    def _style(self, code: str) -> str:
        return code if self.color else ""

    def _write(self, text: str):
        self.out.write(text + "\n")
        self.last_output = self._clock()

    def print_line(self, line: str):
        self._write(line)
        self.emitted += 1
        self.printed += 1

    def print_block(self, template: list[str], repeats: int):
        """Print the lines of a repeating block once, then a repeat-count footer.

        Accounts for the template plus ``repeats`` further cycles of it.
        """
        reset = self._style(COLOR_RESET)
        if len(template) == 1:
            # one-line blocks print plain
            self._write(template[0])
        else:
            highlight = self._style(COLOR_BG_DARK)
            for line in template:
                self._write(f"{highlight}{line}{reset}")
        self._write(
            f"\t\t\t\t{self._style(COLOR_WHITE)}-- repeated {repeats} more times --{reset}"
        )
        self.emitted += len(template) * (1 + repeats)
        self.printed += len(template)
        self.blocks += 1

    def highlight_matches(self, line: str, other: str) -> str:
        """Render ``line`` highlighting characters equal to ``other`` at the same position."""
        if not self.color:
            return line
        parts = []
        current = None
        for idx, ch in enumerate(line):
            same = idx < len(other) and other[idx] == ch
            if same is not current:
                parts.append(COLOR_WHITE if same else COLOR_RESET)
                current = same
            parts.append(ch)
        parts.append(COLOR_RESET)
        return "".join(parts)

    def print_diff(self, line: str, other: str):
        """Print ``line`` highlighted against ``other``; accounts for ``line`` only."""
        self._write(self.highlight_matches(line, other))
        self.emitted += 1
        self.printed += 1

    def debug(self, text: str, color: str = COLOR_MAGENTA):
        """Print a diagnostic line that does not stand for any input line."""
        self._write(f"{self._style(color)}{text}{self._style(COLOR_RESET)}")

    def mismatch(self, line: str, template_line: str):
        """Show the line that broke a pattern next to the template line it missed."""
        magenta = self._style(COLOR_MAGENTA)
        red = self._style(COLOR_RED)
        reset = self._style(COLOR_RESET)
        self._write(f"{magenta}-{red}{line}{reset}")
        self._write(f" {red}{template_line}{reset}")

    def progress(self, repeats: int) -> bool:
        """Print a "still working" notice if nothing was output for a while.

        Returns True when the notice was printed.
        """
        if self._clock() - self.last_output < self.quiet_period:
            return False
        gray = self._style(COLOR_GRAY)
        self._write(f"{gray}... work in progress ({repeats} repeats)..{self._style(COLOR_RESET)}")
        return True
