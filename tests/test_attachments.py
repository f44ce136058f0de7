import io
import shutil
import time

import pytest
from fastapi import UploadFile

from crm.core.errors import FilesystemFault, ValidationFault
from crm.services.attachment_promoter import AttachmentPromoter
from crm.services.attachment_stager import AttachmentStager, clean_filename


def _upload(name: str, payload: bytes = b"data") -> UploadFile:
    return UploadFile(file=io.BytesIO(payload), filename=name)


def test_clean_filename_keeps_only_the_last_component():
    assert clean_filename("photo.png") == "photo.png"
    assert clean_filename("../../etc/passwd") == "passwd"
    assert clean_filename("C:\\Users\\me\\pic.jpg") == "pic.jpg"
    with pytest.raises(ValidationFault):
        clean_filename("")
    with pytest.raises(ValidationFault):
        clean_filename(None)


@pytest.mark.anyio
async def test_stager_writes_uniquely_named_temp_files(tmp_path):
    stager = AttachmentStager(tmp_path / "temp")
    staged = await stager.stage_all([_upload("same.png", b"one"), _upload("same.png", b"two")])

    assert [item.original_filename for item in staged] == ["same.png", "same.png"]
    assert staged[0].temp_path != staged[1].temp_path
    assert staged[0].temp_path.name.endswith("-same.png")
    assert staged[0].temp_path.read_bytes() == b"one"
    assert [item.size for item in staged] == [3, 3]

    await stager.discard(staged)
    assert list((tmp_path / "temp").iterdir()) == []


@pytest.mark.anyio
async def test_promoter_numbers_files_from_offset(tmp_path):
    stager = AttachmentStager(tmp_path / "temp")
    promoter = AttachmentPromoter(tmp_path / "images", workers=2)

    staged = await stager.stage_all([_upload("x.png"), _upload("y.png")])
    paths = await promoter.promote(7, staged, offset=3)

    assert paths == ["7/Image-4-x.png", "7/Image-5-y.png"]
    assert (tmp_path / "images" / "7" / "Image-4-x.png").exists()
    assert not staged[0].temp_path.exists()
    assert await promoter.promote(7, []) == []


@pytest.mark.anyio
async def test_promoter_rolls_back_the_batch_on_failure(tmp_path, monkeypatch):
    stager = AttachmentStager(tmp_path / "temp")
    promoter = AttachmentPromoter(tmp_path / "images", workers=1)
    staged = await stager.stage_all([_upload("ok-1.png"), _upload("bad.png"), _upload("ok-2.png")])
    real_move = shutil.move

    def flaky_move(src, dst):
        if dst.endswith("bad.png"):
            raise OSError("permission denied")
        return real_move(src, dst)

    monkeypatch.setattr("crm.services.attachment_promoter.shutil.move", flaky_move)

    with pytest.raises(FilesystemFault) as excinfo:
        await promoter.promote(11, staged)

    assert excinfo.value.filename == "bad.png"
    assert not (tmp_path / "images" / "11").exists()


@pytest.mark.anyio
async def test_rollback_keeps_existing_directory(tmp_path, monkeypatch):
    stager = AttachmentStager(tmp_path / "temp")
    promoter = AttachmentPromoter(tmp_path / "images")
    first = await stager.stage_all([_upload("first.png")])
    assert await promoter.promote(3, first) == ["3/Image-1-first.png"]

    second = await stager.stage_all([_upload("second.png"), _upload("third.png")])
    real_move = shutil.move

    def flaky_move(src, dst):
        if dst.endswith("third.png"):
            raise OSError("disk full")
        return real_move(src, dst)

    monkeypatch.setattr("crm.services.attachment_promoter.shutil.move", flaky_move)

    with pytest.raises(FilesystemFault):
        await promoter.promote(3, second, offset=1)

    assert sorted(p.name for p in (tmp_path / "images" / "3").iterdir()) == ["Image-1-first.png"]


@pytest.mark.anyio
async def test_remove_order_directory(tmp_path):
    promoter = AttachmentPromoter(tmp_path / "images")
    order_dir = promoter.order_directory(5)
    order_dir.mkdir(parents=True)
    (order_dir / "Image-1-a.png").write_bytes(b"a")

    assert await promoter.remove_order_directory(5) is True
    assert not order_dir.exists()
    assert await promoter.remove_order_directory(5) is False


@pytest.mark.anyio
async def test_timed_out_move_is_swept_on_rollback(tmp_path, monkeypatch):
    stager = AttachmentStager(tmp_path / "temp")
    promoter = AttachmentPromoter(tmp_path / "images", timeout_seconds=0.2)
    existing = await stager.stage_all([_upload("kept.png")])
    await promoter.promote(9, existing)

    staged = await stager.stage_all([_upload("slow.png")])
    real_move = shutil.move

    def slow_move(src, dst):
        result = real_move(src, dst)
        time.sleep(0.5)
        return result

    monkeypatch.setattr("crm.services.attachment_promoter.shutil.move", slow_move)

    with pytest.raises(FilesystemFault) as excinfo:
        await promoter.promote(9, staged, offset=1)

    assert excinfo.value.filename == "slow.png"
    assert sorted(p.name for p in (tmp_path / "images" / "9").iterdir()) == ["Image-1-kept.png"]
