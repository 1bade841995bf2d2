import io
import zipfile

import pytest

from app.features.proximity_graph.domain import InvalidArgument, TokenKind
from app.features.proximity_graph.services.contact_import_service import (
    ContactImportService,
    parse_connection_rows,
    upload_owner,
)
from app.security.hashing import hash_email, hash_phone
from tests.fakes import FakeTokenRepository

CONNECTIONS_CSV = (
    "Notes:\n"
    '"When exporting your connection data, you may notice that some of the email addresses are missing."\n'
    "\n"
    "First Name,Last Name,URL,Email Address,Company,Position,Connected On\n"
    "Ada,Lovelace,https://example.com/ada, Ada@Example.com ,Analytical,Engineer,01 Jan 2024\n"
    "Alan,Turing,https://example.com/alan,,Bletchley,Cryptanalyst,02 Jan 2024\n"
    "Grace,Hopper,https://example.com/grace,grace@example.com,Navy,Admiral,03 Jan 2024\n"
).encode()


class FakeStorage:
    def __init__(self, objects):
        self.objects = dict(objects)
        self.deleted = []

    async def download(self, bucket, path):
        return self.objects[(bucket, path)]

    async def delete(self, bucket, path, *, ignore_not_found=True):
        self.deleted.append((bucket, path))
        return self.objects.pop((bucket, path), None) is not None


def _zip(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


def test_preamble_is_skipped():
    rows = parse_connection_rows(CONNECTIONS_CSV)

    assert [row["First Name"] for row in rows] == ["Ada", "Alan", "Grace"]
    assert rows[1]["Email Address"] == ""


def test_upload_owner_requires_prefix_and_owner():
    assert upload_owner("linkedin_uploads/user-1/export.zip") == "user-1"
    with pytest.raises(InvalidArgument):
        upload_owner("other/user-1/export.zip")
    with pytest.raises(InvalidArgument):
        upload_owner("linkedin_uploads/export.zip")


@pytest.mark.asyncio
async def test_csv_upload_writes_tokens_and_deletes_file(hashing_secret):
    path = "linkedin_uploads/user-1/Connections.csv"
    storage = FakeStorage({("uploads", path): CONNECTIONS_CSV})
    tokens = FakeTokenRepository()

    result = await ContactImportService(storage, tokens).submit_contact_export(
        "user-1", path, "uploads"
    )

    assert result == {"tokens_written": 2}
    assert {t.token for t in tokens.upserted} == {
        hash_email("ada@example.com"),
        hash_email("grace@example.com"),
    }
    assert all(t.owner_user_id == "user-1" and t.kind is TokenKind.EMAIL for t in tokens.upserted)
    assert storage.deleted == [("uploads", path)]


@pytest.mark.asyncio
async def test_zip_upload_reads_connections_entries_only(hashing_secret):
    phones_csv = b"First Name,Last Name,Phone Number\nBob,Smith,+1 (555) 010-9999\n"
    path = "linkedin_uploads/user-1/Basic_LinkedInDataExport.zip"
    archive = _zip(
        {
            "export/connections.CSV": phones_csv,
            "export/Messages.csv": b"From,To,Email Address\nx,y,spam@example.com\n",
        }
    )
    storage = FakeStorage({("uploads", path): archive})
    tokens = FakeTokenRepository()

    result = await ContactImportService(storage, tokens).submit_contact_export(
        "user-1", path, "uploads"
    )

    assert result == {"tokens_written": 1}
    (token,) = tokens.upserted
    assert token.kind is TokenKind.PHONE
    assert token.token == hash_phone("+15550109999")


@pytest.mark.asyncio
async def test_two_owners_uploading_same_contact_share_a_token(hashing_secret):
    tokens = FakeTokenRepository()
    storage = FakeStorage(
        {
            ("uploads", "linkedin_uploads/A/c.csv"): CONNECTIONS_CSV,
            ("uploads", "linkedin_uploads/B/c.csv"): b"Email Address\ngrace@example.com\n",
        }
    )
    service = ContactImportService(storage, tokens)

    await service.submit_contact_export("A", "linkedin_uploads/A/c.csv", "uploads")
    await service.submit_contact_export("B", "linkedin_uploads/B/c.csv", "uploads")

    assert tokens.tokens_by_user["A"] & tokens.tokens_by_user["B"] == {hash_email("grace@example.com")}


@pytest.mark.asyncio
async def test_unknown_extension_writes_nothing_and_keeps_file(hashing_secret):
    path = "linkedin_uploads/user-1/notes.txt"
    storage = FakeStorage({("uploads", path): b"hello"})
    tokens = FakeTokenRepository()

    result = await ContactImportService(storage, tokens).submit_contact_export(
        "user-1", path, "uploads"
    )

    assert result == {"tokens_written": 0}
    assert tokens.upserted == []
    assert storage.deleted == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "caller, path, bucket",
    [
        ("user-1", None, "uploads"),
        ("user-1", "linkedin_uploads/user-1/c.csv", ""),
        ("user-1", "linkedin_uploads/someone-else/c.csv", "uploads"),
        ("user-1", "somewhere/user-1/c.csv", "uploads"),
    ],
)
async def test_invalid_requests_rejected_before_any_work(caller, path, bucket):
    storage = FakeStorage({})
    tokens = FakeTokenRepository()

    with pytest.raises(InvalidArgument):
        await ContactImportService(storage, tokens).submit_contact_export(caller, path, bucket)

    assert tokens.upserted == []
    assert storage.deleted == []


@pytest.mark.asyncio
async def test_corrupt_zip_is_invalid_argument(hashing_secret):
    path = "linkedin_uploads/user-1/export.zip"
    storage = FakeStorage({("uploads", path): b"not a zip"})

    with pytest.raises(InvalidArgument):
        await ContactImportService(storage, FakeTokenRepository()).submit_contact_export(
            "user-1", path, "uploads"
        )
