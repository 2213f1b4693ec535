from storefront_client.confirmation import PendingConfirmation


def test_confirm_runs_pending_action_once(run):
    calls = []

    async def action():
        calls.append("ran")
        return "done"

    prompt = PendingConfirmation()
    prompt.request("Clear?", action)

    async def scenario():
        return await prompt.confirm(), await prompt.confirm()

    assert run(scenario()) == ("done", None)
    assert calls == ["ran"]


def test_new_request_replaces_pending_one(run):
    calls = []

    async def first():
        calls.append("first")

    async def second():
        calls.append("second")

    prompt = PendingConfirmation()
    prompt.request("First?", first)
    prompt.request("Second?", second)
    assert prompt.message == "Second?"
    run(prompt.confirm())
    assert calls == ["second"]
