"""
Tests for the hook manager.
"""

from clubaccess.core.hooks import HookManager, HookPriority


async def test_priority_order():
    manager = HookManager()
    calls = []

    @manager.on("account.created", priority=HookPriority.LAST)
    async def last(user):
        calls.append("last")

    @manager.on("account.created", priority=HookPriority.FIRST)
    async def first(user):
        calls.append("first")

    await manager.trigger("account.created", user=None)

    assert calls == ["first", "last"]


async def test_handler_errors_are_collected():
    manager = HookManager()

    @manager.on("account.deleted")
    async def broken(user_id):
        raise RuntimeError("boom")

    @manager.on("account.deleted")
    async def fine(user_id):
        return user_id

    result = await manager.trigger("account.deleted", user_id="u1")

    assert result.results == ["u1"]
    assert len(result.errors) == 1
    assert isinstance(result.errors[0][1], RuntimeError)


async def test_unknown_event_is_noop():
    result = await HookManager().trigger("nothing.here")
    assert result.results == [] and result.errors == []
