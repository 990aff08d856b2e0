"""Error envelope and success writer tests."""

from __future__ import annotations

import json
import unittest
from unittest.mock import patch

from dou.errors import EnvelopeEncodingError
from dou.responses import API_STATUS_HEADER, JSON_CONTENT_TYPE, error, errors, ok


class SingleErrorEnvelopeTests(unittest.TestCase):
    def test_defaults_to_internal_server_error_and_zero_api_status(self) -> None:
        response = error(ValueError("boom"))

        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.body), {"api_status": 0, "message": "boom"})
        self.assertEqual(response.headers["content-type"], JSON_CONTENT_TYPE)

    def test_status_pairs_are_written_verbatim(self) -> None:
        cases = [(400, 10), (404, 0), (422, 100), (503, 900)]
        for http_status, api_status in cases:
            with self.subTest(http_status=http_status, api_status=api_status):
                response = error(RuntimeError("failed"), status_code=http_status, api_status=api_status)
                self.assertEqual(response.status_code, http_status)
                self.assertEqual(
                    json.loads(response.body),
                    {"api_status": api_status, "message": "failed"},
                )

    def test_plain_string_messages_are_accepted(self) -> None:
        response = error("Internal server error", api_status=900)
        self.assertEqual(json.loads(response.body)["message"], "Internal server error")

    def test_message_is_logged_before_response(self) -> None:
        with self.assertLogs("dou.responses", level="ERROR") as logs:
            error(ValueError("logged failure"), status_code=400)
        self.assertEqual(logs.output, ["ERROR:dou.responses:logged failure"])

    def test_serialization_failure_is_fatal(self) -> None:
        with patch("dou.responses.ApiError") as api_error_cls:
            api_error_cls.return_value.model_dump_json.side_effect = ValueError("unserializable")
            with self.assertRaises(EnvelopeEncodingError) as context:
                error(ValueError("boom"))
        self.assertIsInstance(context.exception.__cause__, ValueError)


class BatchErrorEnvelopeTests(unittest.TestCase):
    def test_preserves_length_and_order(self) -> None:
        errs = [ValueError("first"), ValueError("second"), "third"]

        response = errors(errs, status_code=422, api_status=100)

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.headers["content-type"], JSON_CONTENT_TYPE)
        body = json.loads(response.body)
        self.assertEqual(body["api_status"], 100)
        self.assertEqual([item["message"] for item in body["errors"]], ["first", "second", "third"])

    def test_items_carry_only_messages(self) -> None:
        body = json.loads(errors([ValueError("a")], api_status=7).body)
        self.assertEqual(body, {"api_status": 7, "errors": [{"message": "a"}]})

    def test_defaults_to_internal_server_error_and_zero_api_status(self) -> None:
        response = errors([ValueError("a")])
        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.body)["api_status"], 0)

    def test_every_message_is_logged_in_order(self) -> None:
        with self.assertLogs("dou.responses", level="ERROR") as logs:
            errors([ValueError("one"), ValueError("two")], status_code=422)
        self.assertEqual(logs.output, ["ERROR:dou.responses:one", "ERROR:dou.responses:two"])

    def test_empty_batch_cannot_be_encoded(self) -> None:
        with self.assertRaises(EnvelopeEncodingError):
            errors([])


class OkWriterTests(unittest.TestCase):
    def test_empty_list_body(self) -> None:
        response = ok([])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.body, b"[]")
        self.assertEqual(response.headers["content-type"], JSON_CONTENT_TYPE)
        self.assertNotIn(API_STATUS_HEADER, response.headers)

    def test_api_status_travels_in_header(self) -> None:
        response = ok({"name": "ToQoz"}, status_code=201, api_status=1)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.headers[API_STATUS_HEADER], "1")
        self.assertEqual(json.loads(response.body), {"name": "ToQoz"})
