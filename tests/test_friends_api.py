"""API tests for /users/{user_id}/friends routes."""

import unittest

from tests.test_api import PREFIX, ApiTestCase


class TestFriendRequests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.add_user("alice")
        self.bob = self.add_user("bob")
        self.alice_auth = self.auth("alice")
        self.bob_auth = self.auth("bob")

    def friends_url(self, user_id: int, *parts: object) -> str:
        return "/".join([f"{PREFIX}/users/{user_id}/friends", *map(str, parts)])

    def test_request_accept_and_list(self) -> None:
        response = self.client.post(self.friends_url(self.alice, self.bob), headers=self.alice_auth)
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["status"], "pending")
        self.assertEqual(
            response.headers["location"], f"{PREFIX}/users/{self.alice}/friends/{self.bob}"
        )

        incoming = self.client.get(
            self.friends_url(self.bob, "requests", "incoming"), headers=self.bob_auth
        )
        self.assertEqual([f["requester_id"] for f in incoming.json()], [self.alice])

        response = self.client.put(
            self.friends_url(self.bob, self.alice, "accept"), headers=self.bob_auth
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "accepted")

        page = self.client.get(self.friends_url(self.alice), headers=self.bob_auth).json()
        self.assertEqual(page["users"], [{"id": self.bob, "username": "bob"}])
        count = self.client.get(self.friends_url(self.bob, "count"), headers=self.alice_auth)
        self.assertEqual(count.json(), {"count": 1})
        check = self.client.get(
            self.friends_url(self.bob, self.alice, "check"), headers=self.alice_auth
        )
        self.assertEqual(check.json(), {"are_friends": True})

    def test_acting_for_another_user_is_forbidden(self) -> None:
        cases = [
            ("post", self.friends_url(self.bob, self.alice)),
            ("put", self.friends_url(self.bob, self.alice, "accept")),
            ("delete", self.friends_url(self.bob, self.alice, "reject")),
            ("delete", self.friends_url(self.bob, self.alice, "cancel")),
            ("delete", self.friends_url(self.bob, self.alice)),
            ("post", self.friends_url(self.bob, self.alice, "block")),
            ("delete", self.friends_url(self.bob, self.alice, "block")),
            ("get", self.friends_url(self.bob, "requests", "incoming")),
            ("get", self.friends_url(self.bob, "requests", "outgoing")),
        ]
        for method, url in cases:
            with self.subTest(method=method, url=url):
                response = self.client.request(method, url, headers=self.alice_auth)
                self.assertEqual(response.status_code, 403)

    def test_requires_authentication(self) -> None:
        response = self.client.get(self.friends_url(self.alice))
        self.assertEqual(response.status_code, 401)

    def test_request_error_statuses(self) -> None:
        response = self.client.post(
            self.friends_url(self.alice, self.alice), headers=self.alice_auth
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(self.friends_url(self.alice, 999), headers=self.alice_auth)
        self.assertEqual(response.status_code, 404)

        self.client.post(self.friends_url(self.alice, self.bob), headers=self.alice_auth)
        response = self.client.post(self.friends_url(self.bob, self.alice), headers=self.bob_auth)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "Friend request already pending")

    def test_missing_request_is_not_found(self) -> None:
        for method, url in [
            ("put", self.friends_url(self.bob, self.alice, "accept")),
            ("delete", self.friends_url(self.bob, self.alice, "reject")),
            ("delete", self.friends_url(self.bob, self.alice, "cancel")),
            ("delete", self.friends_url(self.bob, self.alice)),
        ]:
            with self.subTest(method=method, url=url):
                response = self.client.request(method, url, headers=self.bob_auth)
                self.assertEqual(response.status_code, 404)

    def test_reject_and_cancel(self) -> None:
        self.client.post(self.friends_url(self.alice, self.bob), headers=self.alice_auth)
        response = self.client.delete(
            self.friends_url(self.bob, self.alice, "reject"), headers=self.bob_auth
        )
        self.assertEqual(response.status_code, 204)
        status = self.client.get(
            self.friends_url(self.alice, self.bob, "status"), headers=self.alice_auth
        )
        self.assertEqual(status.json(), {"status": "rejected", "is_outgoing": True})

        carol = self.add_user("carol")
        self.client.post(self.friends_url(self.alice, carol), headers=self.alice_auth)
        response = self.client.delete(
            self.friends_url(self.alice, carol, "cancel"), headers=self.alice_auth
        )
        self.assertEqual(response.status_code, 204)
        outgoing = self.client.get(
            self.friends_url(self.alice, "requests", "outgoing"), headers=self.alice_auth
        )
        self.assertEqual(outgoing.json(), [])

    def test_block_then_unblock(self) -> None:
        response = self.client.post(
            self.friends_url(self.alice, self.bob, "block"), headers=self.alice_auth
        )
        self.assertEqual(response.status_code, 204)
        response = self.client.post(self.friends_url(self.bob, self.alice), headers=self.bob_auth)
        self.assertEqual(response.status_code, 409)

        for _ in range(2):
            response = self.client.delete(
                self.friends_url(self.alice, self.bob, "block"), headers=self.alice_auth
            )
            self.assertEqual(response.status_code, 204)
        response = self.client.post(self.friends_url(self.bob, self.alice), headers=self.bob_auth)
        self.assertEqual(response.status_code, 201)

    def test_block_unknown_user(self) -> None:
        response = self.client.post(
            self.friends_url(self.alice, 999, "block"), headers=self.alice_auth
        )
        self.assertEqual(response.status_code, 404)

    def test_friend_list_of_unknown_user(self) -> None:
        self.assertEqual(
            self.client.get(self.friends_url(999), headers=self.alice_auth).status_code, 404
        )
        self.assertEqual(
            self.client.get(self.friends_url(999, "count"), headers=self.alice_auth).status_code,
            404,
        )

    def test_friend_list_paging_bounds(self) -> None:
        for params in ({"page": -1}, {"page": 10**19}, {"size": 0}, {"size": 101}):
            with self.subTest(params=params):
                response = self.client.get(
                    self.friends_url(self.alice), params=params, headers=self.alice_auth
                )
                self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
