from page_composer.dispatch import ImmediateDispatcher, QueueDispatcher


def test_queue_runs_callbacks_in_fifo_order_on_drain():
    dispatcher = QueueDispatcher()
    seen = []
    for i in range(5):
        dispatcher.schedule(lambda i=i: seen.append(i))

    assert seen == []
    assert dispatcher.pending()
    assert dispatcher.drain() == 5
    assert seen == [0, 1, 2, 3, 4]
    assert not dispatcher.pending()


def test_drain_limit():
    dispatcher = QueueDispatcher()
    seen = []
    for i in range(3):
        dispatcher.schedule(lambda i=i: seen.append(i))

    assert dispatcher.drain(limit=2) == 2
    assert seen == [0, 1]
    assert dispatcher.drain() == 1


def test_failing_callback_does_not_stop_the_queue():
    dispatcher = QueueDispatcher()
    seen = []

    def boom():
        raise RuntimeError("ui callback failed")

    dispatcher.schedule(boom)
    dispatcher.schedule(lambda: seen.append("after"))
    assert dispatcher.drain() == 2
    assert seen == ["after"]


def test_immediate_dispatcher_runs_inline():
    seen = []
    ImmediateDispatcher().schedule(lambda: seen.append(1))
    assert seen == [1]
