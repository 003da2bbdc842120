"""Flatten Measure / RepeatGroup trees into repeat-free measures.

The walk is depth-first, left to right. Everything a later measure may
refer back to (the previous bar for ``%``, the previous sounding chord for
``*``) lives in an immutable :class:`ResolutionContext` that is passed in
and handed back, so one context threads through every chord line of a
chart::

    context = ResolutionContext()
    for nodes, line_no in rows:
        measures, context, diagnostics = flatten(nodes, context, line_no)

Repeat groups are sized statically before expansion; a group whose
expansion would push the chart past ``context.ceiling`` measures fails
before anything is allocated.
"""

from dataclasses import dataclass, replace

from .exceptions import ResolutionError
from .models import Chord, Diagnostic, Measure, Node, RepeatChord, RepeatGroup

MAX_EXPANDED_MEASURES = 10_000


@dataclass(frozen=True)
class ResolutionContext:
    previous: Measure | None = None  # last emitted measure
    last_chord: Chord | None = None  # last sounding chord emitted
    emitted: int = 0
    ceiling: int = MAX_EXPANDED_MEASURES


def expanded_size(nodes: tuple[Node, ...]) -> int:
    """Number of measures *nodes* flatten to, without expanding them."""
    total = 0
    for node in nodes:
        if isinstance(node, Measure):
            total += 1
            continue
        total += node.count * expanded_size(node.nodes)
        for _, ending in node.endings:
            # Endings with no matching repetition are still rendered once.
            total += expanded_size(ending)
    return total


def flatten(
    nodes: tuple[Node, ...],
    context: ResolutionContext,
    line_no: int,
) -> tuple[list[Measure], ResolutionContext, list[Diagnostic]]:
    """Resolve one chord line.

    Args:
        nodes:   Top-level nodes from ``parse_chord_line``.
        context: State carried over from earlier lines of the chart.
        line_no: 1-based source line, for errors and diagnostics.

    Returns:
        ``(measures, context, diagnostics)`` where *context* reflects the
        measures just emitted.

    Raises:
        ResolutionError: on ``%`` or ``*`` with nothing to repeat, or when the
            expansion would exceed the context's ceiling.
    """
    measures: list[Measure] = []
    diagnostics: list[Diagnostic] = []
    context = _walk(nodes, context, line_no, measures, diagnostics)
    return measures, context, diagnostics


def _walk(
    nodes: tuple[Node, ...],
    context: ResolutionContext,
    line_no: int,
    out: list[Measure],
    diagnostics: list[Diagnostic],
) -> ResolutionContext:
    for node in nodes:
        if isinstance(node, Measure):
            context = _emit(node, context, line_no, out)
        else:
            context = _expand_group(node, context, line_no, out, diagnostics)
    return context


def _expand_group(
    group: RepeatGroup,
    context: ResolutionContext,
    line_no: int,
    out: list[Measure],
    diagnostics: list[Diagnostic],
) -> ResolutionContext:
    size = expanded_size((group,))
    if context.emitted + size > context.ceiling:
        raise ResolutionError(
            f"repeat expands to {context.emitted + size} measures, "
            f"more than the limit of {context.ceiling}",
            line_no,
            group.column,
        )

    if group.nodes:
        repetitions = range(1, group.count + 1)
    else:
        repetitions = sorted(number for number, _ in group.endings if number <= group.count)
    for repetition in repetitions:
        context = _walk(group.nodes, context, line_no, out, diagnostics)
        ending = group.ending(repetition)
        if ending is not None:
            context = _walk(ending, context, line_no, out, diagnostics)

    for number, ending in group.endings:
        if number > group.count:
            diagnostics.append(
                Diagnostic(
                    line_no,
                    None,
                    f"ending {number} has no matching repetition (group repeats {group.count}x)",
                )
            )
            context = _walk(ending, context, line_no, out, diagnostics)
    return context


def _emit(
    measure: Measure,
    context: ResolutionContext,
    line_no: int,
    out: list[Measure],
) -> ResolutionContext:
    if measure.repeats_previous_bar:
        if context.previous is None:
            raise ResolutionError("no previous bar to repeat", line_no, measure.column)
        resolved = Measure(beats=context.previous.beats, annotation=measure.annotation)
    else:
        resolved = Measure(
            beats=_resolve_beats(measure, context, line_no),
            annotation=measure.annotation,
        )

    last_chord = context.last_chord
    for beat in resolved.beats:
        if isinstance(beat, Chord):
            last_chord = beat

    if context.emitted + 1 > context.ceiling:
        raise ResolutionError(
            f"chart exceeds the limit of {context.ceiling} measures", line_no, measure.column
        )
    out.append(resolved)
    return replace(context, previous=resolved, last_chord=last_chord, emitted=context.emitted + 1)


def _resolve_beats(measure: Measure, context: ResolutionContext, line_no: int) -> tuple:
    beats = []
    sounding = context.last_chord
    for beat in measure.beats:
        if isinstance(beat, RepeatChord):
            if sounding is None:
                raise ResolutionError("no previous chord to repeat", line_no, beat.column)
            beat = sounding
        if isinstance(beat, Chord):
            sounding = beat
        beats.append(beat)
    return tuple(beats)
