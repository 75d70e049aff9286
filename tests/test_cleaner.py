from sqlmodel import Session

from bitbeam.cleaner import reconcile_storage
from bitbeam.models import File


def _upload(ctx, key, limit=2):
    return ctx.uploads.accept(key, "text/plain", "a.txt", limit, b"data")


def test_sweep_keeps_healthy_files(context, owner_key):
    record = _upload(context, owner_key)
    assert reconcile_storage(context) == 0
    assert context.blobs.exists(record.id)


def test_sweep_finishes_pending_deletion(context, owner_key):
    record = _upload(context, owner_key)
    with Session(context.engine) as session:
        row = session.get(File, record.id)
        row.pending_deletion = True
        session.add(row)
        session.commit()

    assert reconcile_storage(context) == 1
    assert not context.blobs.exists(record.id)
    with Session(context.engine) as session:
        assert session.get(File, record.id) is None


def test_sweep_drops_rows_without_blob(context, owner_key):
    record = _upload(context, owner_key)
    context.blobs.path_for(record.id).unlink()

    assert reconcile_storage(context) == 1
    with Session(context.engine) as session:
        assert session.get(File, record.id) is None


def test_sweep_removes_orphan_and_partial_blobs(context, owner_key):
    kept = _upload(context, owner_key)
    context.blobs.write("orphan", b"nobody owns me")
    (context.blobs.root / "half.part").write_bytes(b"half")

    assert reconcile_storage(context) == 1
    assert sorted(context.blobs.list_ids()) == [kept.id]
    snapshot = context.metrics.snapshot()
    assert snapshot["orphans_swept"] == 1
    assert snapshot["expired"] == 0


def test_sweep_counts_only_rows_as_expired(context, owner_key):
    record = _upload(context, owner_key)
    with Session(context.engine) as session:
        row = session.get(File, record.id)
        row.pending_deletion = True
        session.add(row)
        session.commit()
    context.blobs.write("orphan", b"nobody owns me")

    assert reconcile_storage(context) == 2
    snapshot = context.metrics.snapshot()
    assert snapshot["expired"] == 1
    assert snapshot["orphans_swept"] == 1
