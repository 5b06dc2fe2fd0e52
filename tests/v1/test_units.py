# tests/v1/test_units.py
"""Tests for unit and comment endpoints."""

from fastapi import status


def _story(client, headers) -> dict:
    response = client.post("/api/v1/stories/", json={"body": "root"}, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_get_unit_and_children(client, auth_token) -> None:
    created = _story(client, auth_token)
    root_id = created["root_unit_id"]
    bodies = ["left", "right"]
    for body in bodies:
        client.post(
            f"/api/v1/stories/{created['tree_id']}/branches",
            json={"parent_unit_id": root_id, "body": body},
            headers=auth_token,
        )

    unit = client.get(f"/api/v1/units/{root_id}")
    children = client.get(f"/api/v1/units/{root_id}/children")

    assert unit.status_code == status.HTTP_200_OK
    assert unit.json()["parent_id"] is None
    assert [child["body"] for child in children.json()] == bodies


def test_unknown_unit(client) -> None:
    assert client.get("/api/v1/units/missing").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/v1/units/missing/children").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/v1/units/missing/comments").status_code == status.HTTP_404_NOT_FOUND


def test_comment_thread(client, auth_token, other_auth_token) -> None:
    created = _story(client, auth_token)
    root_id = created["root_unit_id"]

    first = client.post(
        f"/api/v1/units/{root_id}/comments", json={"body": "nice"}, headers=other_auth_token
    )
    assert first.status_code == status.HTTP_201_CREATED
    reply = client.post(
        f"/api/v1/units/{root_id}/comments",
        json={"body": "thanks", "reply_to": first.json()["id"]},
        headers=auth_token,
    )
    assert reply.status_code == status.HTTP_201_CREATED
    assert reply.json()["depth"] == 1

    thread = client.get(f"/api/v1/units/{root_id}/comments").json()
    assert [c["body"] for c in thread] == ["nice", "thanks"]
    assert thread[0]["author_id"] == "reader"

    story = client.get(f"/api/v1/stories/{created['tree_id']}").json()
    assert story["total_comment_count"] == 2
    assert client.get(f"/api/v1/units/{root_id}").json()["comment_count"] == 2


def test_empty_comment_rejected(client, auth_token) -> None:
    created = _story(client, auth_token)

    response = client.post(
        f"/api/v1/units/{created['root_unit_id']}/comments",
        json={"body": "  "},
        headers=auth_token,
    )

    assert response.status_code == 422
    assert "cannot be empty" in response.json()["detail"]


def test_comment_requires_auth(client, auth_token) -> None:
    created = _story(client, auth_token)

    response = client.post(
        f"/api/v1/units/{created['root_unit_id']}/comments", json={"body": "hi"}
    )

    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}
