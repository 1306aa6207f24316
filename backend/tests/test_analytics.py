from concurrent.futures import ThreadPoolExecutor

import pytest

from lifehub.core.errors import ConflictError, NotFoundError
from lifehub.services.sharing import AnalyticsAggregator, ShareLinkRegistry


@pytest.fixture()
def share_link(db, settings, owner, note):
    return ShareLinkRegistry(db, settings).create(owner.id, note.id, "note")


def test_summary_is_derived_from_events(db, share_link):
    analytics = AnalyticsAggregator(db)

    analytics.record_access(share_link.share_id, "10.0.0.1", "curl/8")
    analytics.record_access(share_link.share_id, "10.0.0.1", "curl/8")
    last = analytics.record_access(share_link.share_id, "10.0.0.2", "Firefox")

    summary = analytics.summarize(share_link.share_id)
    assert summary.total_views == 3
    assert summary.unique_visitors == 2
    assert summary.last_accessed == last.timestamp

    db.refresh(share_link)
    assert share_link.views == 3
    assert [e.source_address for e in analytics.access_log(share_link.share_id)] == [
        "10.0.0.1", "10.0.0.1", "10.0.0.2"
    ]


def test_empty_summary(db, share_link):
    summary = AnalyticsAggregator(db).summarize(share_link.share_id)
    assert summary.total_views == 0
    assert summary.unique_visitors == 0
    assert summary.last_accessed is None


def test_revoked_link_records_nothing(db, settings, owner, share_link):
    ShareLinkRegistry(db, settings).revoke(share_link.share_id, owner.id)
    analytics = AnalyticsAggregator(db)

    with pytest.raises(ConflictError):
        analytics.record_access(share_link.share_id, "10.0.0.1", None)
    assert analytics.summarize(share_link.share_id).total_views == 0


def test_unknown_link(db):
    with pytest.raises(NotFoundError):
        AnalyticsAggregator(db).summarize("nope")


def test_concurrent_access_loses_no_views(app, db, share_link):
    share_id = share_link.share_id
    workers, per_worker = 8, 5

    def hit(worker: int) -> None:
        session = app.state.session_factory()
        try:
            analytics = AnalyticsAggregator(session)
            for _ in range(per_worker):
                analytics.record_access(share_id, f"10.0.0.{worker}", "load-test")
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(hit, range(workers)))

    db.refresh(share_link)
    summary = AnalyticsAggregator(db).summarize(share_id)
    assert share_link.views == workers * per_worker
    assert summary.total_views == workers * per_worker
    assert summary.unique_visitors == workers
