async def test_notify_and_read_flow(services, clock, make_user):
    user = await make_user()
    sink = services.notifications

    first = await sink.notify(user.id, "first")
    clock.advance(minutes=5)
    await sink.notify(user.id, "second")

    messages = [n.message for n in await sink.list_for_user(user.id)]
    assert messages == ["second", "first"]
    assert await sink.unread_count(user.id) == 2

    await sink.mark_read(first.id, user.id)
    assert await sink.unread_count(user.id) == 1

    await sink.mark_all_read(user.id)
    assert await sink.unread_count(user.id) == 0


async def test_mark_read_is_scoped_to_owner(services, make_user):
    owner, other = await make_user(), await make_user()
    notification = await services.notifications.notify(owner.id, "yours")

    await services.notifications.mark_read(notification.id, other.id)
    assert await services.notifications.unread_count(owner.id) == 1


async def test_unknown_user_has_nothing(services):
    assert await services.notifications.list_for_user("65f000000000000000000000") == []
    assert await services.notifications.unread_count("65f000000000000000000000") == 0
