"""
Comment endpoint tests — adding, listing and deleting comments, with the
author-only deletion rule and the article/comment path consistency check.
"""
import pytest
from httpx import AsyncClient


async def _article_by(client: AsyncClient, auth) -> int:
    resp = await client.post("/api/v1/articles", headers=auth, json={
        "title": "Discussed post", "body": "Body", "tags": ["talk"],
    })
    assert resp.status_code == 201
    return resp.json()["id"]


async def _comment(client: AsyncClient, auth, article_id: int, body: str) -> dict:
    resp = await client.post(
        f"/api/v1/articles/{article_id}/comments", headers=auth, json={"body": body}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Create / list
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_and_list_comments(async_client: AsyncClient, register):
    alice = await register("alice")
    bobby = await register("bobby")
    article_id = await _article_by(async_client, alice)

    first = await _comment(async_client, bobby, article_id, "First!")
    assert first["body"] == "First!"
    assert first["author"]["username"] == "bobby"
    await _comment(async_client, alice, article_id, "Thanks for reading")

    resp = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert resp.status_code == 200
    comments = resp.json()["comments"]
    assert [c["body"] for c in comments] == ["First!", "Thanks for reading"]
    assert all(c["author"]["following"] is False for c in comments)


@pytest.mark.asyncio
async def test_list_comments_following_flag(async_client: AsyncClient, register):
    alice = await register("alice")
    bobby = await register("bobby")
    article_id = await _article_by(async_client, alice)
    await _comment(async_client, bobby, article_id, "Following you now")
    await async_client.post("/api/v1/profiles/bobby/follow", headers=alice)

    resp = await async_client.get(f"/api/v1/articles/{article_id}/comments", headers=alice)
    assert resp.json()["comments"][0]["author"]["following"] is True


@pytest.mark.asyncio
async def test_add_comment_requires_auth(async_client: AsyncClient, register):
    alice = await register("alice")
    article_id = await _article_by(async_client, alice)
    resp = await async_client.post(f"/api/v1/articles/{article_id}/comments", json={"body": "Hi"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_add_comment_empty_body(async_client: AsyncClient, register):
    alice = await register("alice")
    article_id = await _article_by(async_client, alice)
    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments", headers=alice, json={"body": ""}
    )
    assert resp.status_code == 400
    assert resp.json()["violations"][0]["field"] == "body"


@pytest.mark.asyncio
async def test_comment_on_missing_article(async_client: AsyncClient, register):
    alice = await register("alice")
    resp = await async_client.post(
        "/api/v1/articles/9999/comments", headers=alice, json={"body": "Hello?"}
    )
    assert resp.status_code == 404
    resp = await async_client.get("/api/v1/articles/9999/comments")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_author_deletes_own_comment(async_client: AsyncClient, register):
    alice = await register("alice")
    bobby = await register("bobby")
    article_id = await _article_by(async_client, alice)
    comment = await _comment(async_client, bobby, article_id, "Oops, typo")

    resp = await async_client.delete(
        f"/api/v1/articles/{article_id}/comments/{comment['id']}", headers=bobby
    )
    assert resp.status_code == 204

    resp = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert resp.json()["comments"] == []

    resp = await async_client.delete(
        f"/api/v1/articles/{article_id}/comments/{comment['id']}", headers=bobby
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_article_author_cannot_delete_others_comment(async_client: AsyncClient, register):
    alice = await register("alice")
    bobby = await register("bobby")
    article_id = await _article_by(async_client, alice)
    comment = await _comment(async_client, bobby, article_id, "Mine, not yours")

    resp = await async_client.delete(
        f"/api/v1/articles/{article_id}/comments/{comment['id']}", headers=alice
    )
    assert resp.status_code == 403

    resp = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert len(resp.json()["comments"]) == 1


@pytest.mark.asyncio
async def test_delete_comment_through_wrong_article(async_client: AsyncClient, register):
    alice = await register("alice")
    first_article = await _article_by(async_client, alice)
    second_article = await _article_by(async_client, alice)
    comment = await _comment(async_client, alice, first_article, "On the first post")

    resp = await async_client.delete(
        f"/api/v1/articles/{second_article}/comments/{comment['id']}", headers=alice
    )
    assert resp.status_code == 400

    resp = await async_client.get(f"/api/v1/articles/{first_article}/comments")
    assert len(resp.json()["comments"]) == 1
