from catalog_sync.metrics import Metrics


def test_single_increment_constructors():
    assert Metrics.zero() == Metrics(0, 0, 0)
    assert Metrics.added() == Metrics(1, 0, 0)
    assert Metrics.updated() == Metrics(0, 1, 0)
    assert Metrics.deleted() == Metrics(0, 0, 1)


def test_constructors_return_fresh_values():
    first = Metrics.added()
    first.merge(Metrics.added())

    assert Metrics.added().added_count == 1


def test_merge_sums_in_place_and_chains():
    metrics = Metrics.zero()

    result = metrics.merge(Metrics.added(), Metrics.deleted()).merge(Metrics(2, 3, 4))

    assert result is metrics
    assert metrics == Metrics(added_count=3, updated_count=3, deleted_count=5)
    assert metrics.total == 11
