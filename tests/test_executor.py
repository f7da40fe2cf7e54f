"""Tests for execute_request() with the HTTP layer mocked out."""

from unittest.mock import MagicMock, patch

import requests

from reqfile.executor import execute_request, new_session


def _response(status_code=200, json_body=None, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = headers or {"Content-Type": "application/json"}
    resp.text = text
    if json_body is None:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = json_body
    return resp


class TestExecuteRequest:
    @patch("reqfile.executor.requests.request")
    def test_json_response(self, mock_request):
        mock_request.return_value = _response(json_body={"ok": True}, text='{"ok": true}')
        result = execute_request("get", "https://x.test/", headers={"Accept": "application/json"})

        assert result.error is None
        assert result.status_code == 200
        assert result.body == {"ok": True}
        assert result.raw_text == '{"ok": true}'
        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["headers"] == {"Accept": "application/json"}
        assert kwargs["data"] is None
        assert kwargs["allow_redirects"] is True

    @patch("reqfile.executor.requests.request")
    def test_text_response(self, mock_request):
        mock_request.return_value = _response(text="hello", headers={"Content-Type": "text/plain"})
        result = execute_request("GET", "https://x.test/")
        assert result.body == "hello"

    @patch("reqfile.executor.requests.request")
    def test_str_body_is_encoded(self, mock_request):
        mock_request.return_value = _response(json_body={})
        execute_request("POST", "https://x.test/", body="café")
        assert mock_request.call_args.kwargs["data"] == "café".encode("utf-8")

    @patch("reqfile.executor.requests.request")
    def test_bytes_body_passthrough(self, mock_request):
        mock_request.return_value = _response(json_body={})
        execute_request("POST", "https://x.test/", body=b"\x00\x01")
        assert mock_request.call_args.kwargs["data"] == b"\x00\x01"

    @patch("reqfile.executor.requests.request")
    def test_form_data_sent_as_multipart(self, mock_request):
        mock_request.return_value = _response(json_body={})
        form_data = {"data": {"title": "Q3"}, "files": {"doc": ("r.txt", b"numbers", "text/plain")}}
        execute_request(
            "POST",
            "https://x.test/upload",
            headers={"Content-Type": "multipart/form-data; boundary=x", "X-Trace": "1"},
            form_data=form_data,
        )
        kwargs = mock_request.call_args.kwargs
        assert kwargs["headers"] == {"X-Trace": "1"}
        assert kwargs["data"] == {"title": "Q3"}
        assert kwargs["files"] == {"doc": ("r.txt", b"numbers", "text/plain")}

    @patch("reqfile.executor.requests.request")
    def test_no_redirect(self, mock_request):
        mock_request.return_value = _response(status_code=302, text="")
        result = execute_request("GET", "https://x.test/", allow_redirects=False)
        assert result.status_code == 302
        assert mock_request.call_args.kwargs["allow_redirects"] is False

    @patch("reqfile.executor.requests.request")
    def test_timeout(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout()
        result = execute_request("GET", "https://x.test/", timeout=2)
        assert result.error == "Request timed out after 2s"

    @patch("reqfile.executor.requests.request")
    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")
        result = execute_request("GET", "https://x.test/")
        assert result.error.startswith("Connection error:")

    @patch("reqfile.executor.requests.request")
    def test_other_request_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.InvalidURL("bad url")
        result = execute_request("GET", "not a url")
        assert result.error.startswith("Request failed:")


class TestSession:
    def test_session_is_used_with_cookie_jar(self):
        session = MagicMock(spec=requests.Session)
        session.request.return_value = _response(json_body={})
        with patch("reqfile.executor.requests.request") as mock_request:
            execute_request("GET", "https://x.test/", session=session)
        session.request.assert_called_once()
        mock_request.assert_not_called()

    def test_no_cookie_jar_bypasses_session(self):
        session = MagicMock(spec=requests.Session)
        with patch("reqfile.executor.requests.request") as mock_request:
            mock_request.return_value = _response(json_body={})
            execute_request("GET", "https://x.test/", use_cookie_jar=False, session=session)
        session.request.assert_not_called()
        mock_request.assert_called_once()

    def test_new_session(self):
        assert isinstance(new_session(), requests.Session)
