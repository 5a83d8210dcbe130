# test_upstream.py

import json
import unittest
from datetime import datetime, timedelta, timezone

import httpx
import jwt

from cto_portal.app.applications.schemas import ApproverRouting
from cto_portal.app.common.session import (
    SESSION_EXPIRED_MESSAGE,
    SessionExpiredError,
    ensure_active,
    read_session,
)
from cto_portal.app.utils.cto_api import CtoAPIError, CtoApiClient, SubmissionError

BASE_URL = "http://cto.test/api"


def make_token(**claims):
    payload = {"id": "emp-1", "role": "employee", "designation": "des-1"}
    payload.update(claims)
    return jwt.encode(payload, "not-the-gateways-secret", algorithm="HS256")


class SessionTestCase(unittest.TestCase):
    def test_claims_are_read_without_the_signing_key(self):
        expires = datetime.now(tz=timezone.utc) + timedelta(hours=1)
        token = make_token(designation={"_id": "des-9", "name": "Engineer"}, exp=expires)

        session = read_session(token)

        self.assertEqual(session.subject, "emp-1")
        self.assertEqual(session.role, "employee")
        self.assertEqual(session.designation, "des-9")
        self.assertEqual(int(session.expires_at.timestamp()), int(expires.timestamp()))
        self.assertIs(ensure_active(session), session)

    def test_expired_token_is_refused(self):
        token = make_token(exp=datetime.now(tz=timezone.utc) - timedelta(minutes=1))
        session = read_session(token)
        self.assertTrue(session.is_expired())
        with self.assertRaises(SessionExpiredError) as ctx:
            ensure_active(session)
        self.assertEqual(str(ctx.exception), SESSION_EXPIRED_MESSAGE)

    def test_token_without_expiry_stays_active(self):
        session = read_session(make_token())
        self.assertIsNone(session.expires_at)
        self.assertFalse(session.is_expired())

    def test_sub_claim_is_accepted_as_subject(self):
        token = jwt.encode({"sub": "emp-7"}, "secret", algorithm="HS256")
        self.assertEqual(read_session(token).subject, "emp-7")

    def test_token_without_subject_is_refused(self):
        token = jwt.encode({"role": "employee"}, "secret", algorithm="HS256")
        with self.assertRaises(SessionExpiredError):
            read_session(token)

    def test_garbage_token_is_refused(self):
        with self.assertRaises(SessionExpiredError):
            read_session("definitely-not-a-jwt")


class CtoApiClientTestCase(unittest.TestCase):
    def setUp(self):
        self.requests = []
        self.responses = {}

    def handler(self, request):
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.responses:
            return httpx.Response(404, json={"message": "Not found"})
        response = self.responses[key]
        if isinstance(response, Exception):
            raise response
        return response

    def client(self):
        return CtoApiClient(BASE_URL, "tok-123", transport=httpx.MockTransport(self.handler))

    def test_lists_memos_and_forwards_bearer_token(self):
        self.responses[("GET", "/api/employee/memos/me")] = httpx.Response(
            200,
            json={
                "memos": [
                    {
                        "id": "m1",
                        "memoNo": "2025-001",
                        "dateApproved": "2025-01-10T00:00:00.000Z",
                        "uploadedMemo": "/uploads/m1.pdf",
                        "creditedHours": 8,
                        "usedHours": 2,
                        "remainingHours": 6,
                        "reservedHours": 0,
                        "status": "ACTIVE",
                    }
                ]
            },
        )
        with self.client() as client:
            memos = client.list_my_memos()

        self.assertEqual(len(memos), 1)
        self.assertEqual(memos[0].memo_number, "2025-001")
        self.assertEqual(memos[0].remaining_hours, 6)
        self.assertEqual(self.requests[0].headers["authorization"], "Bearer tok-123")

    def test_accepts_a_bare_memo_list(self):
        self.responses[("GET", "/api/employee/memos/me")] = httpx.Response(
            200, json=[{"id": "m1", "remainingHours": 3}]
        )
        with self.client() as client:
            self.assertEqual([m.id for m in client.list_my_memos()], ["m1"])

    def test_malformed_memo_becomes_upstream_error(self):
        self.responses[("GET", "/api/employee/memos/me")] = httpx.Response(
            200, json={"memos": [{"memoNo": "no id"}]}
        )
        with self.client() as client:
            with self.assertRaises(CtoAPIError):
                client.list_my_memos()

    def test_unauthorized_maps_to_session_expiry(self):
        self.responses[("GET", "/api/employee/memos/me")] = httpx.Response(401, json={"message": "jwt expired"})
        with self.client() as client:
            with self.assertRaises(SessionExpiredError) as ctx:
                client.list_my_memos()
        self.assertEqual(str(ctx.exception), "jwt expired")

    def test_server_error_keeps_status_and_message(self):
        self.responses[("GET", "/api/employee/memos/me")] = httpx.Response(500, json={"message": "db down"})
        with self.client() as client:
            with self.assertRaises(CtoAPIError) as ctx:
                client.list_my_memos()
        self.assertEqual(str(ctx.exception), "db down")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_network_failure(self):
        self.responses[("GET", "/api/employee/memos/me")] = httpx.ConnectError("connection refused")
        with self.client() as client:
            with self.assertRaises(CtoAPIError) as ctx:
                client.list_my_memos()
        self.assertEqual(str(ctx.exception), "Unable to reach the CTO service")

    def test_approver_settings_accept_populated_and_bare_ids(self):
        self.responses[("GET", "/api/cto/settings/des-1")] = httpx.Response(
            200,
            json={
                "data": {
                    "level1Approver": {"_id": "u1", "firstName": "Ana"},
                    "level2Approver": "u2",
                    "level3Approver": None,
                }
            },
        )
        with self.client() as client:
            routing = client.get_approver_settings("des-1")
        self.assertEqual(routing, ApproverRouting(approver1="u1", approver2="u2"))
        self.assertEqual(routing.missing_levels(), [3])

    def test_missing_approver_setting_gives_empty_routing(self):
        self.responses[("GET", "/api/cto/settings/des-2")] = httpx.Response(
            200, json={"show": False, "message": "No approver settings found"}
        )
        with self.client() as client:
            self.assertEqual(client.get_approver_settings("des-2"), ApproverRouting())

    def test_submit_posts_payload(self):
        self.responses[("POST", "/api/cto/applications/apply")] = httpx.Response(
            201, json={"message": "CTO application submitted", "data": {"_id": "app-1"}}
        )
        payload = {"requestedHours": 4, "memos": [{"memoId": "m1", "appliedHours": 4}]}
        with self.client() as client:
            response = client.submit_application(payload)
        self.assertEqual(response["data"], {"_id": "app-1"})
        self.assertEqual(json.loads(self.requests[0].content), payload)

    def test_rejected_submission_uses_error_field(self):
        self.responses[("POST", "/api/cto/applications/apply")] = httpx.Response(
            400, json={"error": "Insufficient CTO credits"}
        )
        with self.client() as client:
            with self.assertRaises(SubmissionError) as ctx:
                client.submit_application({"requestedHours": 4})
        self.assertEqual(str(ctx.exception), "Insufficient CTO credits")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_rejected_submission_without_body_uses_fallback(self):
        self.responses[("POST", "/api/cto/applications/apply")] = httpx.Response(400, text="Bad Request")
        with self.client() as client:
            with self.assertRaises(SubmissionError) as ctx:
                client.submit_application({"requestedHours": 4})
        self.assertEqual(str(ctx.exception), "Failed to submit CTO application")


if __name__ == "__main__":
    unittest.main()
