"""Tests for main.py CLI functionality."""

import argparse
import json
import os
from unittest.mock import patch

from media_gateway.core.factories import GatewayFactory
from media_gateway.main import main, run_upload
from media_gateway.testing import (
    FakeLogger,
    FakeTransport,
    SIGNATURE_URL,
    UPLOAD_URL,
    error_response,
    setup_test_gateway_environment,
)

ENV = {
    "MEDIA_SIGNATURE_URL": SIGNATURE_URL,
    "CLOUDINARY_UPLOAD_URL": UPLOAD_URL,
    "CLOUDINARY_UPLOAD_PRESET": "abc",
}


def _args(path, **overrides):
    values = {"path": str(path), "filename": None, "content_type": None, "debug": False}
    values.update(overrides)
    return argparse.Namespace(**values)


def _json_lines(output):
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def _service_factory(transport):
    real_create_service = GatewayFactory.create_service

    def create_service(config):
        return real_create_service(config, transport=transport, logger=FakeLogger())

    return create_service


class TestMainCLI:
    """Tests for the main CLI functionality."""

    def test_main_with_no_args_shows_help(self):
        with patch("sys.argv", ["media-gateway"]):
            with patch("argparse.ArgumentParser.print_help") as mock_help:
                with patch("sys.exit") as mock_exit:
                    main()
                    mock_help.assert_called_once()
                    mock_exit.assert_called_once_with(1)

    def test_main_version_command(self):
        with patch("sys.argv", ["media-gateway", "version"]):
            with patch("builtins.print") as mock_print:
                with patch("sys.exit") as mock_exit:
                    main()
                    mock_print.assert_any_call("Media Gateway CLI")
                    mock_print.assert_any_call("Version 0.1.0")
                    mock_exit.assert_called_once_with(0)

    def test_main_upload_command_exits_with_run_upload_code(self):
        with patch("sys.argv", ["media-gateway", "upload", "photo.jpg", "--debug"]):
            with patch("media_gateway.main.run_upload", return_value=0) as mock_run:
                with patch("sys.exit") as mock_exit:
                    main()
                    args = mock_run.call_args[0][0]
                    assert args.path == "photo.jpg"
                    assert args.debug is True
                    mock_exit.assert_called_once_with(0)


class TestRunUpload:
    """Tests for the upload command."""

    def test_missing_configuration(self, tmp_path):
        image = tmp_path / "img.jpg"
        image.write_bytes(b"jpeg")

        with patch.dict(os.environ, {}, clear=True):
            assert run_upload(_args(image)) == 2

    def test_missing_file(self, tmp_path):
        with patch.dict(os.environ, ENV):
            assert run_upload(_args(tmp_path / "missing.jpg")) == 2

    def test_successful_upload_prints_result(self, tmp_path, capsys):
        image = tmp_path / "img.jpg"
        image.write_bytes(b"jpeg bytes")
        transport = setup_test_gateway_environment()

        with patch.dict(os.environ, ENV):
            with patch(
                "media_gateway.main.GatewayFactory.create_service",
                side_effect=_service_factory(transport),
            ):
                assert run_upload(_args(image)) == 0

        assert _json_lines(capsys.readouterr().out) == [
            {
                "status": 200,
                "message": "Image uploaded successfully",
                "url": "https://cdn.example/img.jpg",
            }
        ]
        upload_request = transport.requests_to(UPLOAD_URL)[0]
        assert upload_request.form["content_type"] == "image/jpeg"

    def test_failed_upload_prints_normalized_error(self, tmp_path, capsys):
        image = tmp_path / "img.jpg"
        image.write_bytes(b"jpeg bytes")
        transport = FakeTransport()
        transport.add_response(SIGNATURE_URL, error_response(401, "bad key"))

        with patch.dict(os.environ, ENV):
            with patch(
                "media_gateway.main.GatewayFactory.create_service",
                side_effect=_service_factory(transport),
            ):
                assert run_upload(_args(image, filename="avatar.jpg")) == 1

        lines = _json_lines(capsys.readouterr().out)
        assert lines[0]["status"] == 401
        assert lines[0]["message"] == "bad key"
        assert transport.requests_to(SIGNATURE_URL)[0].form["filename"] == "avatar.jpg"
