from __future__ import annotations

import threading

from models import StatusKind, StatusUpdate
from notifier import Notifier


def test_updates_are_delivered_in_order_off_the_caller_thread() -> None:
    received: list[tuple[StatusKind, str]] = []
    notifier = Notifier(lambda u: received.append((u.kind, threading.current_thread().name)))

    notifier.publish(StatusUpdate(StatusKind.RECORDING, 1))
    notifier.publish(StatusUpdate(StatusKind.TRANSCRIBING, 1))
    notifier.publish(StatusUpdate(StatusKind.TRANSCRIPT_READY, 1, text="hi"))
    notifier.join()
    notifier.close()

    assert [kind for kind, _ in received] == [
        StatusKind.RECORDING,
        StatusKind.TRANSCRIBING,
        StatusKind.TRANSCRIPT_READY,
    ]
    assert all(name == "status-notifier" for _, name in received)


def test_listener_exception_does_not_stop_dispatch() -> None:
    received: list[StatusKind] = []

    def listener(update: StatusUpdate) -> None:
        if update.kind == StatusKind.RECORDING:
            raise RuntimeError("ui exploded")
        received.append(update.kind)

    notifier = Notifier(listener)
    notifier.publish(StatusUpdate(StatusKind.RECORDING, 1))
    notifier.publish(StatusUpdate(StatusKind.IDLE, 1))
    notifier.join()
    notifier.close()

    assert received == [StatusKind.IDLE]


def test_publish_after_close_is_dropped() -> None:
    received: list[StatusUpdate] = []
    notifier = Notifier(received.append)
    notifier.close()

    notifier.publish(StatusUpdate(StatusKind.IDLE, 1))

    assert received == []


def test_terminal_flag() -> None:
    assert StatusUpdate(StatusKind.ERROR).terminal is True
    assert StatusUpdate(StatusKind.TRANSCRIPT_READY).terminal is True
    assert StatusUpdate(StatusKind.RECORDING).terminal is False
