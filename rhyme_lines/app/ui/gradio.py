"""Gradio smoke page for exercising the rhyme worker by hand."""

from __future__ import annotations

import concurrent.futures
from typing import Any, Dict, Iterable, List, Optional, Tuple

import gradio as gr

from ...core.models import Mode, QueryRequest, QueryResult, RhymeType
from ...core.targets import CARET_DEBOUNCE_MS, last_word_of_line, word_at_caret
from ...utils.telemetry import get_telemetry
from ...worker.client import RhymeWorkerClient

RESULT_TIMEOUT = 5.0
RHYME_TYPE_CHOICES = [kind.value for kind in RhymeType]


def _format_words(words: List[str]) -> str:
    if not words:
        return "_No suggestions._"
    return ", ".join(words)


def _current_line(text: str, caret_index: int) -> str:
    start = text.rfind("\n", 0, caret_index) + 1
    end = text.find("\n", caret_index)
    return text[start : end if end != -1 else len(text)]


def suggest(
    client: RhymeWorkerClient,
    text: str,
    caret_index: float | int | None,
    cap: float | int | None,
    rhyme_types: Optional[Iterable[str]] = None,
) -> Tuple[str, str, Dict[str, Any], str, Dict[str, Any]]:
    """Run one suggestion round trip and shape it for the page outputs."""

    text = text or ""
    index = len(text) if caret_index is None else max(0, min(int(caret_index), len(text)))
    request = QueryRequest.for_targets(
        caret=word_at_caret(text, index) or "",
        line_last=last_word_of_line(_current_line(text, index)) or "",
        cap=int(cap) if cap else None,
        debounce_ms=CARET_DEBOUNCE_MS,
        rhyme_types=rhyme_types,
    )

    try:
        result = client.get_rhymes(request).result(timeout=RESULT_TIMEOUT)
    except concurrent.futures.TimeoutError:
        result = QueryResult()

    warning = client.get_warning() or ""
    return (
        _format_words(result.words(Mode.CARET)),
        _format_words(result.words(Mode.LINE_LAST)),
        result.as_dict()["debug"],
        warning,
        get_telemetry().as_dict(),
    )


def create_interface(client: RhymeWorkerClient) -> gr.Blocks:
    """Construct the Blocks page wired to ``client``."""

    with gr.Blocks(title="Rhyme worker smoke test") as demo:
        gr.Markdown("## Rhyme worker smoke test")
        with gr.Row():
            with gr.Column():
                text = gr.Textbox(label="Lyrics", lines=6)
                caret = gr.Number(label="Caret index", value=0, precision=0)
                cap = gr.Slider(label="Max suggestions", minimum=1, maximum=500, value=50, step=1)
                rhyme_types = gr.CheckboxGroup(
                    label="Rhyme types", choices=RHYME_TYPE_CHOICES, value=RHYME_TYPE_CHOICES
                )
                button = gr.Button("Suggest rhymes")
            with gr.Column():
                caret_out = gr.Markdown(label="Caret word")
                line_out = gr.Markdown(label="Line end")
                warning_out = gr.Textbox(label="Warning", interactive=False)
        debug_out = gr.JSON(label="Debug")
        telemetry_out = gr.JSON(label="Telemetry")

        button.click(
            lambda t, c, m, r: suggest(client, t, c, m, r),
            inputs=[text, caret, cap, rhyme_types],
            outputs=[caret_out, line_out, debug_out, warning_out, telemetry_out],
        )

    return demo


__all__ = ["create_interface", "suggest"]
