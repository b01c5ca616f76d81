import asyncio
import io

import pytest
from fastapi import UploadFile

from src.slidesync.exceptions import PayloadTooLargeError
from src.slidesync.media.upload_store import UploadStore
from src.slidesync.scenes.scenes_repository import SceneRepository
from src.slidesync.scenes.scenes_service import SceneCatalog


def _upload(name: str, content: bytes) -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=name)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("original", "expected"),
    [
        ("Holiday.JPG", "1700_Holiday.JPG"),
        ("my photo (1).png", "1700_my_photo__1_.png"),
        ("über.mov", "1700__ber.mov"),
        (".hidden", "1700__hidden"),
        ("noext", "1700_noext"),
    ],
)
def test_derive_filename_sanitizes(original, expected) -> None:
    assert UploadStore.derive_filename(original, now_ms=1700) == expected


@pytest.mark.unit
def test_persist_upload_writes_file(media_paths) -> None:
    store = UploadStore(paths=media_paths, max_bytes=1024)

    stored = asyncio.run(store.persist_upload(_upload("../../etc/cat.jpg", b"x" * 100)))

    assert stored.original_name == "cat.jpg"
    assert stored.path.parent == media_paths.images
    assert stored.path.read_bytes() == b"x" * 100
    assert stored.size_bytes == 100
    assert stored.filename.endswith("_cat.jpg")


@pytest.mark.unit
def test_oversized_upload_is_rejected_and_removed(media_paths) -> None:
    store = UploadStore(paths=media_paths, max_bytes=10)

    with pytest.raises(PayloadTooLargeError):
        asyncio.run(store.persist_upload(_upload("big.jpg", b"x" * 11)))

    assert [path.name for path in media_paths.images.iterdir() if path.is_file()] == []


@pytest.mark.unit
def test_colliding_names_get_a_counter(media_paths, monkeypatch) -> None:
    store = UploadStore(paths=media_paths, max_bytes=1024)
    monkeypatch.setattr(
        UploadStore, "derive_filename", staticmethod(lambda name, now_ms=None: "1_same.jpg")
    )

    first = asyncio.run(store.persist_upload(_upload("same.jpg", b"a")))
    second = asyncio.run(store.persist_upload(_upload("same.jpg", b"b")))

    assert first.filename == "1_same.jpg"
    assert second.filename == "1_same-1.jpg"


@pytest.mark.unit
def test_staged_upload_stays_hidden_until_commit(media_paths) -> None:
    store = UploadStore(paths=media_paths, max_bytes=1024)
    catalog = SceneCatalog(
        repository=SceneRepository(media_paths.images.parent / "scenes.json"),
        paths=media_paths,
    )

    staged = asyncio.run(store.stage_upload(_upload("slow.jpg", b"partial")))

    assert staged.temp_path.name.startswith(".")
    assert staged.temp_path.parent == media_paths.images
    assert catalog.scan_media_directory() == []

    stored = store.commit(staged)

    assert not staged.temp_path.exists()
    assert catalog.scan_media_directory() == [stored.filename]
    assert stored.path.read_bytes() == b"partial"


@pytest.mark.unit
def test_discard_removes_staged_file(media_paths) -> None:
    store = UploadStore(paths=media_paths, max_bytes=1024)
    staged = asyncio.run(store.stage_upload(_upload("drop.jpg", b"bytes")))

    store.discard(staged)

    assert list(media_paths.images.glob(".upload-*")) == []
