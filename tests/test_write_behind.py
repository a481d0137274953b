import threading

import pytest

from mint_api.services.write_behind import WriteBehind


def test_shutdown_drains_queued_writes(app):
    wb = WriteBehind(max_workers=1)
    wb.init_app(app)
    gate = threading.Event()
    done = []

    wb.submit(gate.wait, 5)
    futures = [wb.submit(done.append, i) for i in range(3)]
    assert wb.pending() == 4

    gate.set()
    assert wb.shutdown(timeout=10) is True
    assert done == [0, 1, 2]
    assert all(f.done() for f in futures)
    assert wb.pending() == 0

    with pytest.raises(RuntimeError):
        wb.submit(done.append, 99)
    # segunda llamada no hace nada
    assert wb.shutdown() is True


def test_jobs_run_in_app_context(app):
    from flask import current_app

    wb = WriteBehind()
    wb.init_app(app)
    try:
        assert wb.submit(lambda: current_app.name).result(timeout=10) == app.name
    finally:
        wb.shutdown(timeout=10)
