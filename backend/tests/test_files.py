import pytest

from docverctl.database.mongodb import get_database
from docverctl.repositories.audit_repository import audit_repo
from docverctl.services.workspace_service import map_prefix

from conftest import blob_sha


def test_map_prefix():
    assert map_prefix("docs/guides/setup.md", "docs", "archive/docs") == "archive/docs/guides/setup.md"


@pytest.mark.asyncio
async def test_tree_lists_folders_first(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/tree", headers=member_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["base_path"] == ""
    assert [(e["type"], e["name"]) for e in body["entries"]] == [("dir", "docs"), ("file", "README.md")]

    nested = await client.get(f"/projects/{project.id}/tree?path=docs", headers=member_headers)
    assert [e["path"] for e in nested.json()["entries"]] == ["docs/guides", "docs/intro.md", "docs/manual.pdf"]


@pytest.mark.asyncio
async def test_tree_rejects_traversal(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/tree?path=docs/../../etc", headers=member_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_bad_path_is_rejected_before_project_lookup(client, member_headers):
    unknown = "0123456789abcdef01234567"
    for url in (
        f"/projects/{unknown}/tree?path=../etc",
        f"/projects/{unknown}/file?path=/etc/passwd",
        f"/projects/{unknown}/file-history?path=docs/../../x",
    ):
        response = await client.get(url, headers=member_headers)
        assert response.status_code == 400, url
        assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_read_text_file(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/file?path=docs/intro.md", headers=member_headers)

    assert response.status_code == 200
    assert response.json() == {
        "kind": "text",
        "path": "docs/intro.md",
        "name": "intro.md",
        "sha": blob_sha(b"Hello\n"),
        "size": 6,
        "content": "Hello\n",
    }


@pytest.mark.asyncio
async def test_read_binary_file_returns_metadata_only(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/file?path=docs/manual.pdf", headers=member_headers)

    body = response.json()
    assert body["kind"] == "binary"
    assert "content" not in body
    assert body["download_url"]


@pytest.mark.asyncio
async def test_raw_pdf_is_served_inline(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/file?path=docs/manual.pdf&raw=true", headers=member_headers)

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 fake"
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == 'inline; filename="manual.pdf"'
    assert response.headers["cache-control"] == "private, no-store"


@pytest.mark.asyncio
async def test_raw_text_is_an_attachment(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/file?path=README.md&raw=true", headers=member_headers)

    assert response.headers["content-disposition"] == 'attachment; filename="README.md"'


@pytest.mark.asyncio
async def test_read_missing_file_is_404(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/file?path=docs/missing.md", headers=member_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_file_then_read_back(client, member_headers, project, fake_github):
    created = await client.post(
        f"/projects/{project.id}/file",
        json={"path": "docs/new.md", "content": "# New page\n", "message": "Add new page"},
        headers=member_headers,
    )

    assert created.status_code == 200
    body = created.json()
    assert body["ok"] is True
    assert body["content_sha"] == blob_sha(b"# New page\n")

    read = await client.get(f"/projects/{project.id}/file?path=docs/new.md", headers=member_headers)
    assert read.json()["content"] == "# New page\n"

    entries = await audit_repo.find_by_project(project.id)
    assert sorted(e.action.value for e in entries) == ["COMMIT", "FILE_CREATE"]
    assert all(e.meta["commit_sha"] == body["commit_sha"] for e in entries)


@pytest.mark.asyncio
async def test_create_over_existing_file_is_a_conflict(client, member_headers, project, fake_github):
    response = await client.post(
        f"/projects/{project.id}/file",
        json={"path": "docs/intro.md", "content": "Overwrite", "message": "Create intro"},
        headers=member_headers,
    )

    assert response.status_code == 409
    assert response.json()["error"] == "File already exists. Open it and edit instead."
    assert fake_github.get_repo("acme", "handbook").files["docs/intro.md"] == b"Hello\n"
    assert await get_database()["audit_logs"].count_documents({}) == 0


@pytest.mark.asyncio
async def test_stale_sha_conflicts_then_retry_with_fresh_sha_succeeds(client, member_headers, project, fake_github):
    url = f"/projects/{project.id}/file"
    opened = (await client.get(f"{url}?path=docs/intro.md", headers=member_headers)).json()

    # Someone else saves first
    first = await client.post(
        url,
        json={"path": "docs/intro.md", "content": "Theirs\n", "message": "Their edit", "sha": opened["sha"]},
        headers=member_headers,
    )
    assert first.status_code == 200

    stale = await client.post(
        url,
        json={"path": "docs/intro.md", "content": "Mine\n", "message": "My edit", "sha": opened["sha"]},
        headers=member_headers,
    )
    assert stale.status_code == 409
    assert stale.json()["error"] == "File has changed on GitHub. Reload it and retry."
    repo = fake_github.get_repo("acme", "handbook")
    assert repo.files["docs/intro.md"] == b"Theirs\n"

    reloaded = (await client.get(f"{url}?path=docs/intro.md", headers=member_headers)).json()
    retry = await client.post(
        url,
        json={"path": "docs/intro.md", "content": "Mine\n", "message": "My edit", "sha": reloaded["sha"]},
        headers=member_headers,
    )
    assert retry.status_code == 200
    assert repo.files["docs/intro.md"] == b"Mine\n"


@pytest.mark.asyncio
async def test_save_rejects_short_commit_message(client, member_headers, project):
    response = await client.post(
        f"/projects/{project.id}/file",
        json={"path": "docs/new.md", "content": "x", "message": "no"},
        headers=member_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_save_rejects_absolute_path(client, member_headers, project):
    response = await client.post(
        f"/projects/{project.id}/file",
        json={"path": "/etc/passwd", "content": "x", "message": "Sneaky write"},
        headers=member_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_file(client, member_headers, project, fake_github):
    response = await client.request(
        "DELETE",
        f"/projects/{project.id}/file?path=docs/intro.md",
        json={"sha": blob_sha(b"Hello\n"), "message": "Remove intro"},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert "docs/intro.md" not in fake_github.get_repo("acme", "handbook").files
    entries = await audit_repo.find_by_project(project.id)
    assert [e.action.value for e in entries] == ["FILE_DELETE"]


@pytest.mark.asyncio
async def test_delete_with_stale_sha_is_a_conflict(client, member_headers, project, fake_github):
    response = await client.request(
        "DELETE",
        f"/projects/{project.id}/file?path=docs/intro.md",
        json={"sha": "0" * 40, "message": "Remove intro"},
        headers=member_headers,
    )

    assert response.status_code == 409
    assert "docs/intro.md" in fake_github.get_repo("acme", "handbook").files


@pytest.mark.asyncio
async def test_create_folder_writes_placeholder(client, member_headers, project, fake_github):
    response = await client.post(
        f"/projects/{project.id}/folders", json={"path": "specs/"}, headers=member_headers
    )

    assert response.status_code == 201
    assert response.json()["path"] == "specs"
    assert fake_github.get_repo("acme", "handbook").files["specs/.keep"] == b""

    again = await client.post(f"/projects/{project.id}/folders", json={"path": "specs"}, headers=member_headers)
    assert again.status_code == 409
    assert again.json()["error"] == "Folder already exists"


@pytest.mark.asyncio
async def test_delete_folder_removes_every_file_under_it(client, member_headers, project, fake_github):
    response = await client.request(
        "DELETE",
        f"/projects/{project.id}/folders?path=docs",
        json={"message": "Drop the docs"},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert sorted(response.json()["deleted"]) == ["docs/guides/setup.md", "docs/intro.md", "docs/manual.pdf"]
    assert list(fake_github.get_repo("acme", "handbook").files) == ["README.md"]


@pytest.mark.asyncio
async def test_delete_missing_folder_is_404(client, member_headers, project):
    response = await client.request(
        "DELETE",
        f"/projects/{project.id}/folders?path=nope",
        json={"message": "Drop nothing"},
        headers=member_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_rename_file_in_same_folder(client, member_headers, project, fake_github):
    response = await client.post(
        f"/projects/{project.id}/rename",
        json={"from_path": "docs/intro.md", "to_path": "docs/introduction.md"},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    files = fake_github.get_repo("acme", "handbook").files
    assert files["docs/introduction.md"] == b"Hello\n"
    assert "docs/intro.md" not in files

    entries = await audit_repo.find_by_project(project.id)
    assert [e.action.value for e in entries] == ["RENAME"]


@pytest.mark.asyncio
async def test_move_folder_recursively(client, member_headers, project, fake_github):
    response = await client.post(
        f"/projects/{project.id}/rename",
        json={"from_path": "docs", "to_path": "archive/docs"},
        headers=member_headers,
    )

    assert response.status_code == 200
    files = fake_github.get_repo("acme", "handbook").files
    assert sorted(files) == [
        "README.md",
        "archive/docs/guides/setup.md",
        "archive/docs/intro.md",
        "archive/docs/manual.pdf",
    ]
    # Bytes survive the move unchanged
    assert files["archive/docs/manual.pdf"] == b"%PDF-1.4 fake"

    entries = await audit_repo.find_by_project(project.id)
    assert entries[0].action.value == "MOVE"
    assert entries[0].meta == {"to_path": "archive/docs", "files": 3}


@pytest.mark.asyncio
async def test_move_large_file_keeps_every_byte(client, member_headers, project, fake_github):
    repo = fake_github.get_repo("acme", "handbook")
    big = b"%PDF-1.7 " + bytes(range(256)) * 64
    fake_github.commit(repo, "docs/big.pdf", big, "Add big.pdf")
    fake_github.large_files.add("docs/big.pdf")

    response = await client.post(
        f"/projects/{project.id}/rename",
        json={"from_path": "docs/big.pdf", "to_path": "archive/big.pdf"},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert repo.files["archive/big.pdf"] == big
    assert "docs/big.pdf" not in repo.files


@pytest.mark.asyncio
async def test_move_onto_existing_file_conflicts(client, member_headers, project, fake_github):
    response = await client.post(
        f"/projects/{project.id}/rename",
        json={"from_path": "docs/intro.md", "to_path": "README.md"},
        headers=member_headers,
    )

    assert response.status_code == 409
    files = fake_github.get_repo("acme", "handbook").files
    assert files["README.md"] == b"# Handbook\n"
    assert "docs/intro.md" in files


@pytest.mark.asyncio
async def test_partial_move_reports_completed_files(client, member_headers, project, fake_github):
    fake_github.fail_writes["moved/manual.pdf"] = 500

    response = await client.post(
        f"/projects/{project.id}/rename",
        json={"from_path": "docs", "to_path": "moved"},
        headers=member_headers,
    )

    assert response.status_code == 502
    moved = response.json()["details"]["moved"]
    # Folders come first in listing order: the guides subtree moved before the failure
    assert {"from": "docs/guides/setup.md", "to": "moved/guides/setup.md"} in moved
    assert all(pair["from"] != "docs/manual.pdf" for pair in moved)
    assert "docs/manual.pdf" in fake_github.get_repo("acme", "handbook").files


@pytest.mark.asyncio
async def test_move_into_itself_is_rejected(client, member_headers, project):
    response = await client.post(
        f"/projects/{project.id}/rename",
        json={"from_path": "docs", "to_path": "docs/inner"},
        headers=member_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_file_history_with_comparison(client, member_headers, project):
    url = f"/projects/{project.id}/file"
    await client.post(
        url,
        json={"path": "docs/intro.md", "content": "Second\n", "message": "Second version", "sha": blob_sha(b"Hello\n")},
        headers=member_headers,
    )
    await client.post(
        url,
        json={"path": "docs/intro.md", "content": "Third\n", "message": "Third version", "sha": blob_sha(b"Second\n")},
        headers=member_headers,
    )

    history = await client.get(f"/projects/{project.id}/file-history?path=docs/intro.md", headers=member_headers)

    assert history.status_code == 200
    body = history.json()
    assert [c["message"] for c in body["commits"]] == ["Third version", "Second version", "Add docs/intro.md"]
    assert body["latest"]["content"] == "Third\n"
    assert body["previous"]["content"] == "Second\n"
    assert body["comparison"] is None

    base_sha = body["commits"][2]["sha"]
    head_sha = body["commits"][0]["sha"]
    compared = await client.get(
        f"/projects/{project.id}/file-history?path=docs/intro.md&base_sha={base_sha}&head_sha={head_sha}",
        headers=member_headers,
    )

    comparison = compared.json()["comparison"]
    assert comparison["base"]["content"] == "Hello\n"
    assert comparison["base"]["message"] == "Add docs/intro.md"
    assert comparison["head"]["content"] == "Third\n"


@pytest.mark.asyncio
async def test_file_history_without_commits_is_404(client, member_headers, project):
    response = await client.get(f"/projects/{project.id}/file-history?path=docs/never.md", headers=member_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "No commits found for this file"
