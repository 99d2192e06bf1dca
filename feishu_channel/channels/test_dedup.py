from feishu_channel.channels.dedup import MessageDeduplicator


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_first_sighting_is_not_duplicate_second_is() -> None:
    dedup = MessageDeduplicator()

    assert dedup.is_duplicate("om_1") is False
    assert dedup.is_duplicate("om_1") is True
    assert dedup.is_duplicate("om_2") is False


def test_missing_ids_are_never_duplicates() -> None:
    dedup = MessageDeduplicator()

    assert dedup.is_duplicate(None) is False
    assert dedup.is_duplicate("") is False
    assert dedup.is_duplicate("") is False
    assert len(dedup) == 0


def test_oldest_ids_are_evicted_past_capacity() -> None:
    dedup = MessageDeduplicator(max_entries=3)
    for i in range(4):
        dedup.is_duplicate(f"om_{i}")

    assert "om_0" not in dedup
    assert dedup.is_duplicate("om_3") is True
    assert dedup.is_duplicate("om_0") is False


def test_ids_expire_after_ttl() -> None:
    clock = FakeClock()
    dedup = MessageDeduplicator(ttl_seconds=60, clock=clock)
    dedup.is_duplicate("om_1")

    clock.now += 30
    assert dedup.is_duplicate("om_1") is True

    clock.now += 61
    assert dedup.is_duplicate("om_1") is False
