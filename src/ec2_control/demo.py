from __future__ import annotations

import html
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .errors import InstanceNotFoundError, WaitTimeoutError
from .models import InstanceDescriptor
from .waiter import wait_for_state

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 2.0


class Controller(Protocol):
    instance_id: str

    def fetch_info(self) -> InstanceDescriptor | None: ...

    def fetch_status(self) -> str | None: ...

    def activate(self) -> None: ...

    def deactivate(self) -> None: ...


class Renderer(Protocol):
    def message(self, text: str) -> str: ...

    def field(self, label: str, value: str) -> str: ...

    def blank(self) -> str: ...


class HtmlRenderer:
    def message(self, text: str) -> str:
        return f"{html.escape(text)}<br>"

    def field(self, label: str, value: str) -> str:
        return f"<b>{html.escape(label)}:</b> {html.escape(value)}<br>"

    def blank(self) -> str:
        return "<br>"


class TextRenderer:
    def message(self, text: str) -> str:
        return text

    def field(self, label: str, value: str) -> str:
        return f"{label}: {value}"

    def blank(self) -> str:
        return ""


RENDERERS: dict[str, type[HtmlRenderer] | type[TextRenderer]] = {
    "html": HtmlRenderer,
    "text": TextRenderer,
}


@dataclass(slots=True, frozen=True)
class DemoResult:
    instance: InstanceDescriptor | None
    status_after_start: str | None
    status_after_stop: str | None


def describe_lines(instance: InstanceDescriptor | None, instance_id: str, renderer: Renderer) -> list[str]:
    lines = [renderer.message("Instance information:")]
    if instance is None:
        lines.append(renderer.message(f"Instance {instance_id} not found"))
    else:
        if instance.name is not None:
            lines.append(renderer.field("Name", instance.name))
        lines.append(renderer.field("Public DNS", instance.public_dns))
        lines.append(renderer.field("Public IP", instance.public_ip))
        lines.append(renderer.field("State", instance.state))
    lines.append(renderer.blank())
    return lines


def run_demo(
    controller: Controller,
    emit: Callable[[str], None],
    *,
    renderer: Renderer | None = None,
    delay: float = DEFAULT_SETTLE_DELAY,
    wait: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> DemoResult:
    """Describe, start, read status, stop and read status again.

    Errors from ``activate``/``deactivate`` propagate to the caller. With
    ``wait`` the fixed ``delay`` is replaced by a bounded poll for the
    expected state.
    """
    renderer = renderer or HtmlRenderer()

    instance = controller.fetch_info()
    for line in describe_lines(instance, controller.instance_id, renderer):
        emit(line)

    controller.activate()
    emit(renderer.message("Activating the instance"))
    _settle(controller, emit, renderer, target="running", delay=delay, wait=wait, sleep=sleep)
    status_after_start = _emit_status(controller, emit, renderer)

    controller.deactivate()
    emit(renderer.message("Deactivating the instance"))
    _settle(controller, emit, renderer, target="stopped", delay=delay, wait=wait, sleep=sleep)
    status_after_stop = _emit_status(controller, emit, renderer)

    emit(renderer.message("This example is done"))
    emit(renderer.blank())
    return DemoResult(
        instance=instance,
        status_after_start=status_after_start,
        status_after_stop=status_after_stop,
    )


def _settle(
    controller: Controller,
    emit: Callable[[str], None],
    renderer: Renderer,
    *,
    target: str,
    delay: float,
    wait: bool,
    sleep: Callable[[float], None],
) -> None:
    if not wait:
        sleep(delay)
        return
    try:
        wait_for_state(controller, (target,), interval=delay, sleep=sleep)
    except WaitTimeoutError as error:
        logger.warning("%s", error.message, extra={"instance_id": controller.instance_id})
        emit(renderer.message(f"Gave up waiting for {target} (last state: {error.last_state})"))
    except InstanceNotFoundError as error:
        logger.warning("%s", error.message, extra={"instance_id": controller.instance_id})
        emit(renderer.message(f"Instance {controller.instance_id} not found while waiting for {target}"))


def _emit_status(controller: Controller, emit: Callable[[str], None], renderer: Renderer) -> str | None:
    status = controller.fetch_status()
    if status is not None:
        emit(renderer.field("Status just after the command", status))
        emit(renderer.blank())
    return status
