"""Compaction engine: detects runs of near-identical lines and collapses them.

A ``BlockTracker`` is fed one line at a time. While idle it looks back
through the not yet printed lines for one similar enough to the current
line; a match fixes the length of a repeating block whose template is the
history from the matched line onwards. While in a block, every new line is
compared against the template line at the same position of the cycle. When
a line misses, the block is printed once with a repeat count (or, if not a
single cycle completed, the lines are printed with a character diff) and
the line is re-examined as if idle.
"""

import functools
import io
import logging

from . import config
from .emitter import Emitter
from .history import HistoryRing
from .similarity import similarity, tokenize
from .stats import CompactionStats

_log = logging.getLogger("uniqlog.engine")

MIN_LINE_LENGTH = 2


@functools.lru_cache(maxsize=512)
def _tokens(line: str) -> tuple[str, ...]:
    return tuple(tokenize(line))


class SimilarityBlock:
    """The template of a repeating block and the position reached in it.

    ``cursor`` is the template position the last accepted line matched and
    ``repeats`` the number of cycles completed after the template itself.
    """

    def __init__(self, template: list[str]):
        self.template = template
        self.template_tokens = [_tokens(line) for line in template]
        self.cursor = 0
        self.repeats = 0

    def __len__(self) -> int:
        return len(self.template)


class BlockTracker:
    """Line-by-line state machine: idle, or riding a ``SimilarityBlock``.

    Thresholds left as None are read from the configuration.
    """

    def __init__(
        self,
        emitter: Emitter,
        first_threshold: float | None = None,
        keep_threshold: float | None = None,
        debug: bool | None = None,
        capacity: int | None = None,
    ):
        self.emitter = emitter
        self.first_threshold = (
            config.get("first_similarity_threshold") if first_threshold is None else first_threshold
        )
        self.keep_threshold = (
            config.get("keep_similarity_threshold") if keep_threshold is None else keep_threshold
        )
        self.debug = config.get("debug") if debug is None else debug
        self.history = HistoryRing(config.get("max_lines_track") if capacity is None else capacity)
        self.block: SimilarityBlock | None = None
        self.consumed = 0
        self.false_starts = 0

    @property
    def pending(self) -> int:
        """Lines read but not yet accounted for by any output."""
        return self.consumed - self.emitter.emitted

    def feed(self, line: str):
        """Process one input line (already stripped of its line terminator)."""
        self.consumed += 1
        tokens = _tokens(line)

        if self.block is not None:
            self._advance(line, tokens)
        if self.block is None:
            self._establish(tokens)

        # the slot about to be reused still holds an unprinted line
        if self.block is None and self.pending - 1 >= self.history.capacity:
            self.emitter.print_line(self.history.next_to_overwrite())
        self.history.push(line)

    def finish(self) -> CompactionStats:
        """Break any open block and print every line still buffered."""
        if self.block is not None:
            self._advance("", ())
        for line in self.history.tail(self.pending):
            self.emitter.print_line(line)
        return self.stats()

    def stats(self) -> CompactionStats:
        return CompactionStats(
            consumed=self.consumed,
            emitted=self.emitter.emitted,
            printed=self.emitter.printed,
            blocks=self.emitter.blocks,
            false_starts=self.false_starts,
        )

    def _establish(self, tokens):
        candidates = min(self.pending - 1, len(self.history))
        for offset in range(candidates):
            score = similarity(_tokens(self.history.recent(offset)), tokens)
            if score <= self.first_threshold:
                continue
            length = offset + 1
            # lines older than the new block's template go out as they are
            for line in self.history.tail(candidates)[: candidates - length]:
                self.emitter.print_line(line)
            self.block = SimilarityBlock(self.history.tail(length))
            _log.debug(
                "Block of %d line(s) established at line %d (similarity %.2f)",
                length,
                self.consumed,
                score,
            )
            return

    def _advance(self, line: str, tokens):
        block = self.block
        block.cursor = (block.cursor + 1) % len(block)
        score = similarity(block.template_tokens[block.cursor], tokens)
        if score > self.keep_threshold:
            if block.cursor == len(block) - 1:
                block.repeats += 1
                self.emitter.progress(block.repeats)
            return

        _log.debug(
            "Block of %d line(s) broken at line %d after %d repeats (similarity %.2f)",
            len(block),
            self.consumed,
            block.repeats,
            score,
        )
        if block.repeats > 0:
            repeats = block.repeats
            if len(block) == 1:
                # the line that established a one-line block is a repeat too
                repeats += 1
            self.emitter.print_block(block.template, repeats)
        else:
            self._print_false_start(block, line, score)
        self.block = None

    def _print_false_start(self, block: SimilarityBlock, line: str, score: float):
        self.false_starts += 1
        matched = block.cursor
        if self.debug:
            self.emitter.debug(
                f"--- Failed at {matched} range: {len(block)} sim: {score:.2f}"
            )
        for i in range(matched):
            self.emitter.print_diff(block.template[i], self.history.recent(matched - 1 - i))
        if self.debug:
            self.emitter.mismatch(line, block.template[matched])
            self.emitter.debug("---")


def compact_stream(
    stream,
    out=None,
    first_threshold: float | None = None,
    keep_threshold: float | None = None,
    debug: bool | None = None,
    color: bool | None = None,
    capacity: int | None = None,
    clock=None,
) -> CompactionStats:
    """Compact every line of ``stream`` into ``out`` with fresh state.

    A read error ends the stream early; the lines read so far are still
    flushed.
    """
    emitter = Emitter(
        out=out,
        color=config.get("color") if color is None else color,
        quiet_period=config.get("time_without_output"),
        clock=clock,
    )
    tracker = BlockTracker(
        emitter,
        first_threshold=first_threshold,
        keep_threshold=keep_threshold,
        debug=debug,
        capacity=capacity,
    )
    try:
        for raw in stream:
            line = raw.rstrip("\r\n")
            # too short or blank lines are noise, not input
            if len(line) < MIN_LINE_LENGTH or not line.strip():
                continue
            tracker.feed(line)
    except OSError:
        _log.exception("Read failed after %d lines, flushing what was read", tracker.consumed)
    return tracker.finish()


def compact_text(text: str, color: bool = False, **kwargs) -> str:
    """Compact a block of text and return the output as a string."""
    out = io.StringIO()
    compact_stream(io.StringIO(text), out=out, color=color, **kwargs)
    return out.getvalue()
