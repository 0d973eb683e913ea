"""
Size-based packing and the small-unit repair pass.
"""

from typing import List, NamedTuple, Optional, Tuple

from ..core.models import Budget
from ..obs.events import emit_event
from .boundaries import split_into_paragraphs, split_into_sentences
from .tokens import CHARS_PER_TOKEN, TokenCounter

UNIT_JOINER = "\n\n"


class PackedUnit(NamedTuple):
    """Intermediate unit produced while packing, before it becomes a TextUnit."""

    content: str
    token_count: int
    title: Optional[str] = None
    tail_small: bool = False


def part_title(base: Optional[str], number: int) -> str:
    """Title of the n-th size-based part of ``base``."""
    if not base:
        return f"Section {number}"
    if number == 1:
        return base
    return f"{base} (Part {number})"


def _pieces(
    text: str,
    budget: Budget,
    counter: TokenCounter,
    chars_per_token: int,
    profile: Optional[str],
) -> List[Tuple[str, int]]:
    pieces: List[Tuple[str, int]] = []
    for paragraph in split_into_paragraphs(text):
        tokens = counter.count_tokens(paragraph, profile)
        if tokens <= budget.max_tokens:
            pieces.append((paragraph, tokens))
            continue

        buckets = split_into_sentences(paragraph, budget.max_tokens * chars_per_token)
        emit_event(
            "segment.paragraph_split",
            level="DEBUG",
            paragraph_tokens=tokens,
            buckets=len(buckets),
        )
        for bucket in buckets:
            pieces.append((bucket, counter.count_tokens(bucket, profile)))
    return pieces


def pack_paragraphs(
    text: str,
    budget: Budget,
    counter: TokenCounter,
    chars_per_token: int = CHARS_PER_TOKEN,
    profile: Optional[str] = None,
) -> List[PackedUnit]:
    """
    Greedily pack paragraphs into units near ``budget.ideal_tokens``.

    Args:
        text: Text to pack
        budget: Token window for the produced units
        counter: Token counter used for every measurement
        chars_per_token: Ratio used to size sentence buckets of oversized
            paragraphs
        profile: Tokenizer profile handed to the counter

    Returns:
        Units in input order (untitled)
    """
    units: List[PackedUnit] = []
    buffer: List[str] = []
    buffer_tokens = 0

    def close() -> None:
        content = UNIT_JOINER.join(buffer)
        units.append(PackedUnit(content, counter.count_tokens(content, profile)))

    for piece, piece_tokens in _pieces(text, budget, counter, chars_per_token, profile):
        if buffer:
            projected = buffer_tokens + piece_tokens
            over_ideal = (
                projected > budget.ideal_tokens
                and buffer_tokens >= budget.min_tokens
            )
            if over_ideal or projected > budget.max_tokens:
                close()
                buffer, buffer_tokens = [], 0
        buffer.append(piece)
        buffer_tokens += piece_tokens

    if buffer:
        close()

    return units


def _merge(
    first: PackedUnit,
    second: PackedUnit,
    counter: TokenCounter,
    profile: Optional[str],
) -> PackedUnit:
    content = f"{first.content}{UNIT_JOINER}{second.content}"
    # The larger side names the merged unit; ties keep the first title
    if second.token_count > first.token_count:
        major, minor = second, first
    else:
        major, minor = first, second
    return PackedUnit(
        content=content,
        token_count=counter.count_tokens(content, profile),
        title=major.title or minor.title,
    )


def repair_units(
    units: List[PackedUnit],
    budget: Budget,
    counter: TokenCounter,
    slack_ratio: float = 0.10,
    profile: Optional[str] = None,
) -> List[PackedUnit]:
    """
    Merge units below ``budget.min_tokens`` into a neighbour.

    A small unit goes into the next unit while the result stays within
    ideal plus slack, else into the previous unit within max, else into the
    next unit within max. A small final unit only looks backwards and is
    flagged ``tail_small`` when it cannot be absorbed.

    Args:
        units: Units in order
        budget: Token window
        counter: Token counter used to re-measure merged units
        slack_ratio: Fraction of ideal tolerated when merging forwards
        profile: Tokenizer profile handed to the counter

    Returns:
        Repaired units in order
    """
    if not units:
        return units

    forward_limit = budget.ideal_tokens + int(budget.ideal_tokens * slack_ratio)
    pending = list(units)
    repaired: List[PackedUnit] = []
    i = 0

    while i < len(pending):
        current = pending[i]
        if current.token_count >= budget.min_tokens:
            repaired.append(current)
            i += 1
            continue

        is_last = i == len(pending) - 1

        forward = None
        if not is_last:
            forward = _merge(current, pending[i + 1], counter, profile)
            if forward.token_count <= forward_limit:
                # Re-evaluated on the next iteration
                pending[i + 1] = forward
                i += 1
                continue

        if repaired:
            backward = _merge(repaired[-1], current, counter, profile)
            if backward.token_count <= budget.max_tokens:
                repaired[-1] = backward
                i += 1
                continue

        if forward is not None and forward.token_count <= budget.max_tokens:
            pending[i + 1] = forward
            i += 1
            continue

        if is_last:
            emit_event(
                "segment.tail_small",
                level="WARNING",
                token_count=current.token_count,
                min_tokens=budget.min_tokens,
            )
            current = current._replace(tail_small=True)

        repaired.append(current)
        i += 1

    return repaired
