"""
Hit-event aggregation and hand-off to a notification sink.

Events accumulate between flushes; a flush renders one message grouped
by target type in the fixed order shortTerm, wave, support, swap. When
that is too long, each type gets its own messages, split between event
lines, and every message remembers which events it carries so a failed
send requeues exactly the events that did not go out.
"""
import re
import threading
import time
from collections.abc import Callable
from typing import Protocol

from .constants import DISPATCH_INTERVAL, TELEGRAM_MAX_MESSAGE
from .exceptions import NotificationError, NotificationRejected
from .hit_detector import LIMIT_DOWN, LIMIT_UP
from .logger import logger
from .models import DISPLAY_ORDER, HitEvent, TargetKind

LABELS = {
    TargetKind.SHORT_TERM: "💰 Short-term target",
    TargetKind.WAVE: "🌊 Wave target",
    TargetKind.SUPPORT: "🛡️ Support",
    TargetKind.SWAP: "🔄 Swap reference",
}

LIMIT_MARKS = {
    LIMIT_UP: " 🔺limit up",
    LIMIT_DOWN: " 🔻limit down",
}

_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")

# (message text, events it carries)
Batch = tuple[str, list[HitEvent]]


class NotificationSink(Protocol):
    def send(self, text: str) -> bool:
        """
        True when delivered, False on a failure worth retrying later.

        Raises NotificationRejected for a message that can never be delivered.
        """
        ...


def format_price(value: float | None) -> str:
    """Display precision by price band: <50 two decimals, <500 one, else none"""
    if value is None:
        return "-"
    if value < 50:
        return f"{value:.2f}"
    if value < 500:
        return f"{value:.1f}"
    return f"{value:.0f}"


def escape_markdown(text: str) -> str:
    """Backslash-escape Telegram Markdown control characters"""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def message_length(text: str) -> int:
    """Length as Telegram counts it (UTF-16 code units)"""
    return len(text.encode("utf-16-le")) // 2


def group_events(events: list[HitEvent]) -> list[tuple[TargetKind, list[HitEvent]]]:
    """Events grouped by type, in display order, empty groups dropped"""
    groups = []
    for kind in DISPLAY_ORDER:
        members = [e for e in events if e.type == kind]
        if members:
            groups.append((kind, members))
    return groups


def format_event(event: HitEvent) -> str:
    line = (
        f"• {escape_markdown(event.code)} {escape_markdown(event.name)}: "
        f"{format_price(event.price)} (target {format_price(event.target)})"
    )
    if event.change_percent is not None:
        line += f" {event.change_percent:+.2f}%"
    if event.limit:
        line += LIMIT_MARKS.get(event.limit, "")
    return line


def section_heading(kind: TargetKind) -> str:
    return f"*{LABELS[kind]}*"


def chunk_section(kind: TargetKind, members: list[HitEvent],
                  max_length: int = TELEGRAM_MAX_MESSAGE) -> list[Batch]:
    """
    One type's events as messages of at most ``max_length``.

    Splits fall between event lines and each chunk repeats the heading.
    """
    heading = section_heading(kind)
    chunks: list[Batch] = []
    lines, carried = [heading], []
    size = message_length(heading)

    for event in members:
        line = format_event(event)
        added = 1 + message_length(line)
        if carried and size + added > max_length:
            chunks.append(("\n".join(lines), carried))
            lines, carried = [heading], []
            size = message_length(heading)
        lines.append(line)
        carried.append(event)
        size += added

    chunks.append(("\n".join(lines), carried))
    return chunks


def build_batches(events: list[HitEvent], max_length: int = TELEGRAM_MAX_MESSAGE) -> list[Batch]:
    """Messages for ``events`` paired with the events each one carries"""
    groups = group_events(events)
    if not groups:
        return []

    sections = [
        "\n".join([section_heading(kind)] + [format_event(e) for e in members])
        for kind, members in groups
    ]
    combined = "\n\n".join([f"🎯 Target hits ({len(events)})"] + sections)
    if message_length(combined) <= max_length:
        return [(combined, [e for _, members in groups for e in members])]

    batches: list[Batch] = []
    for kind, members in groups:
        batches.extend(chunk_section(kind, members, max_length))
    return batches


def build_messages(events: list[HitEvent], max_length: int = TELEGRAM_MAX_MESSAGE) -> list[str]:
    return [text for text, _ in build_batches(events, max_length)]


class HitAggregator:
    """
    Buffers hit events and flushes them to a sink periodically.

    Events from messages that failed to send go back to the front of the
    queue; a message the sink rejects outright is logged and dropped.
    """

    def __init__(
        self,
        sink: NotificationSink | None,
        interval: float = DISPATCH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        max_length: int = TELEGRAM_MAX_MESSAGE,
    ):
        self.sink = sink
        self.interval = interval
        self.max_length = max_length
        self._clock = clock
        self._pending: list[HitEvent] = []
        self._last_flush = clock()
        self._lock = threading.Lock()

    def add(self, events: list[HitEvent]):
        if not events:
            return
        with self._lock:
            self._pending.extend(events)
        logger.debug("dispatch.queued", added=len(events), pending=len(self._pending))

    @property
    def pending(self) -> list[HitEvent]:
        with self._lock:
            return list(self._pending)

    def flush_if_due(self) -> int:
        if self._clock() - self._last_flush < self.interval:
            return 0
        return self.flush()

    def flush(self) -> int:
        """
        Send all pending events.

        Returns:
            Number of events delivered to the sink
        """
        with self._lock:
            batch, self._pending = self._pending, []
            self._last_flush = self._clock()

        if not batch:
            return 0
        batches = build_batches(batch, self.max_length)
        if self.sink is None:
            logger.info("dispatch.no_sink", events=len(batch))
            for message, _ in batches:
                logger.info("dispatch.message", text=message.replace("\n", " | "))
            return len(batch)

        delivered = 0
        for index, (message, members) in enumerate(batches):
            error = "sink reported failure"
            try:
                sent = self.sink.send(message)
            except NotificationRejected as e:
                logger.error("dispatch.rejected", events=len(members),
                             codes=",".join(ev.code for ev in members), error=str(e))
                continue
            except NotificationError as e:
                sent, error = False, str(e)

            if not sent:
                unsent = [e for _, rest in batches[index:] for e in rest]
                logger.error("dispatch.failed", delivered=delivered, requeued=len(unsent), error=error)
                with self._lock:
                    self._pending = unsent + self._pending
                return delivered
            delivered += len(members)

        logger.info("dispatch.sent", events=delivered, messages=len(batches))
        return delivered
