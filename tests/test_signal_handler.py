import signal
import threading

from keybinder.signal_handler import SignalHandler


def test_config_handler_installs_handlers():
    handler = SignalHandler()
    old_int = signal.getsignal(signal.SIGINT)
    old_term = signal.getsignal(signal.SIGTERM)
    try:
        handler.config_handler()
        assert signal.getsignal(signal.SIGINT) == handler.handle_signal
        assert signal.getsignal(signal.SIGTERM) == handler.handle_signal
    finally:
        signal.signal(signal.SIGINT, old_int)
        signal.signal(signal.SIGTERM, old_term)


def test_raised_signal_calls_on_quit():
    calls = []
    handler = SignalHandler(lambda: calls.append("quit"))
    old_int = signal.getsignal(signal.SIGINT)
    try:
        handler.config_handler()
        signal.raise_signal(signal.SIGINT)
    finally:
        signal.signal(signal.SIGINT, old_int)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
    assert calls == ["quit"]
    assert handler.quit_requested.is_set()


def test_only_first_signal_is_handled():
    calls = []
    handler = SignalHandler(lambda: calls.append("quit"))
    handler.handle_signal(signal.SIGTERM, None)
    handler.handle_signal(signal.SIGINT, None)
    assert calls == ["quit"]


def test_handle_signal_without_callback_sets_flag():
    handler = SignalHandler()
    assert not handler.quit_requested.is_set()
    handler.handle_signal(signal.SIGINT)
    assert handler.quit_requested.is_set()


def test_shutdown_stops_thread():
    stop = threading.Event()
    thread = threading.Thread(target=stop.wait, daemon=True)
    thread.start()
    handler = SignalHandler()
    handler.set_daemon_thread(thread, stop)
    assert handler.shutdown(5.0) is True
    assert stop.is_set()
    assert not thread.is_alive()


def test_shutdown_reports_stuck_thread():
    release = threading.Event()
    thread = threading.Thread(target=release.wait, daemon=True)
    thread.start()
    handler = SignalHandler()
    handler.set_daemon_thread(thread, threading.Event())
    try:
        assert handler.shutdown(0.05) is False
        assert thread.is_alive()
    finally:
        release.set()
        thread.join(5)


def test_shutdown_without_thread():
    assert SignalHandler().shutdown(0.01) is True