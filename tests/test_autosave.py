# backend/tests/test_autosave.py

import asyncio

from app.core.errors import PersistenceError
from app.schemas.form import QuestionType
from app.services.autosave import AutoSaver
from app.services.builder import FormBuilder
from app.services.form_model import new_form


def test_edits_within_window_write_once_with_last_snapshot():
    saved = []

    async def scenario():
        async def save(form):
            saved.append(form)

        builder = FormBuilder(new_form("f1"), AutoSaver(save, delay=0.05))
        builder.set_title("First")
        builder.set_title("Second")
        builder.add_question(QuestionType.EMAIL)
        await asyncio.sleep(0.2)

    asyncio.run(scenario())
    assert len(saved) == 1
    assert saved[0].title == "Second"
    assert len(saved[0].questions) == 1


def test_edits_after_window_write_again():
    saved = []

    async def scenario():
        saver = AutoSaver(lambda form: saved.append(form.title), delay=0.02)
        builder = FormBuilder(new_form("f1"), saver)
        builder.set_title("One")
        await asyncio.sleep(0.15)
        builder.set_title("Two")
        await asyncio.sleep(0.15)

    asyncio.run(scenario())
    assert saved == ["One", "Two"]


def test_flush_writes_pending_immediately():
    saved = []

    async def scenario():
        async def save(form):
            saved.append(form.title)

        saver = AutoSaver(save, delay=10)
        builder = FormBuilder(new_form("f1"), saver)
        builder.set_title("Leaving")
        assert saver.pending is not None
        await saver.flush()
        assert saver.pending is None

    asyncio.run(scenario())
    assert saved == ["Leaving"]


def test_cancel_drops_pending_write():
    saved = []

    async def scenario():
        async def save(form):
            saved.append(form)

        saver = AutoSaver(save, delay=0.02)
        FormBuilder(new_form("f1"), saver).set_title("Discarded")
        saver.cancel()
        await asyncio.sleep(0.1)

    asyncio.run(scenario())
    assert saved == []


def test_failed_save_reports_error_and_keeps_form():
    errors = []

    async def scenario():
        async def save(form):
            raise RuntimeError("connection reset")

        builder = FormBuilder(new_form("f1"), AutoSaver(save, delay=0.01, on_error=errors.append))
        builder.set_title("Kept in memory")
        await asyncio.sleep(0.1)
        return builder

    builder = asyncio.run(scenario())
    assert len(errors) == 1
    assert isinstance(errors[0], PersistenceError)
    assert builder.form.title == "Kept in memory"


def test_in_flight_write_is_not_cancelled_by_new_edit():
    saved = []

    async def scenario():
        async def save(form):
            await asyncio.sleep(0.05)
            saved.append(form.title)

        saver = AutoSaver(save, delay=0.01)
        builder = FormBuilder(new_form("f1"), saver)
        builder.set_title("A")
        await asyncio.sleep(0.03)  # write of "A" has started
        builder.set_title("B")
        await asyncio.sleep(0.2)

    asyncio.run(scenario())
    assert saved == ["A", "B"]
