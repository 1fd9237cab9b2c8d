from catalog_sync.instrumentation import memory, rss_mb, timing


def test_timing_and_memory_log_phase(caplog):
    caplog.set_level("INFO", logger="catalog_sync.instrumentation")

    with memory("Generate dataset"), timing("Generate dataset"):
        payload = [0] * 1000

    assert len(payload) == 1000
    assert "Generate dataset took" in caplog.text
    assert "Generate dataset memory:" in caplog.text


def test_rss_is_positive():
    assert rss_mb() > 0
