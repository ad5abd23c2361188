from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from services.ai import build_image_editor
from services.ai.gemini import GeminiEditClient, build_edit_prompt, extract_image
from services.errors import ConfigurationError, EditRequestFailed, EncodingError, NoResultError


def _response(*parts):
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))],
        text=None,
    )


def _image_part(data: bytes, mime_type: str = "image/png"):
    return SimpleNamespace(inline_data=SimpleNamespace(mime_type=mime_type, data=data), text=None)


def _text_part(text: str):
    return SimpleNamespace(inline_data=None, text=text)


def _fake_client(response=None, error=None):
    generate = AsyncMock(return_value=response, side_effect=error)
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))


def test_edit_prompt_embeds_instruction() -> None:
    prompt = build_edit_prompt("  Remove background ")

    assert prompt.startswith("You are a professional product photo editor.")
    assert '"Remove background"' in prompt
    assert "photorealistic" in prompt


@pytest.mark.asyncio
async def test_request_edit_sends_one_request_and_returns_first_image(
    png_bytes: bytes, edited_png: bytes
) -> None:
    fake = _fake_client(_response(_text_part("Here you go"), _image_part(edited_png)))
    client = GeminiEditClient(api_key="", model_name="gemini-2.5-flash-image", client=fake)

    result = await client.request_edit(png_bytes, "image/png", "Fix lighting and shadows")

    assert result.data == edited_png
    assert result.mime_type == "image/png"
    generate = fake.aio.models.generate_content
    generate.assert_awaited_once()
    kwargs = generate.await_args.kwargs
    assert kwargs["model"] == "gemini-2.5-flash-image"
    image_part, text_part = kwargs["contents"]
    assert image_part.inline_data.data == png_bytes
    assert image_part.inline_data.mime_type == "image/png"
    assert '"Fix lighting and shadows"' in text_part.text


@pytest.mark.asyncio
async def test_unknown_mime_type_falls_back_to_detected_type(jpeg_bytes: bytes, edited_png: bytes) -> None:
    fake = _fake_client(_response(_image_part(edited_png)))
    client = GeminiEditClient(api_key="", client=fake)

    await client.request_edit(jpeg_bytes, "", "Enhance product colors")

    image_part = fake.aio.models.generate_content.await_args.kwargs["contents"][0]
    assert image_part.inline_data.mime_type == "image/jpeg"


@pytest.mark.asyncio
async def test_text_only_response_raises_no_result(png_bytes: bytes) -> None:
    client = GeminiEditClient(api_key="", client=_fake_client(_response(_text_part("I can't"))))

    with pytest.raises(NoResultError):
        await client.request_edit(png_bytes, "image/png", "Remove background")


@pytest.mark.asyncio
async def test_empty_response_raises_no_result(png_bytes: bytes) -> None:
    empty = SimpleNamespace(candidates=None, text=None)
    client = GeminiEditClient(api_key="", client=_fake_client(empty))

    with pytest.raises(NoResultError):
        await client.request_edit(png_bytes, "image/png", "Remove background")


@pytest.mark.asyncio
async def test_sdk_errors_surface_as_edit_request_failed(png_bytes: bytes) -> None:
    fake = _fake_client(error=ConnectionError("network down"))
    client = GeminiEditClient(api_key="", client=fake)

    with pytest.raises(EditRequestFailed) as excinfo:
        await client.request_edit(png_bytes, "image/png", "Remove background")

    assert not isinstance(excinfo.value, NoResultError)
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    fake.aio.models.generate_content.assert_awaited_once()


@pytest.mark.asyncio
async def test_invalid_input_is_rejected_before_any_request(png_bytes: bytes) -> None:
    fake = _fake_client(_response())
    client = GeminiEditClient(api_key="", client=fake)

    with pytest.raises(ValueError):
        await client.request_edit(png_bytes, "image/png", "   ")
    with pytest.raises(EncodingError):
        await client.request_edit(b"", "image/png", "Remove background")
    fake.aio.models.generate_content.assert_not_awaited()


@pytest.mark.asyncio
async def test_unconfigured_client_fails(png_bytes: bytes) -> None:
    client = GeminiEditClient(api_key="")

    assert client.available is False
    with pytest.raises(EditRequestFailed):
        await client.request_edit(png_bytes, "image/png", "Remove background")


def test_extract_image_scans_all_candidates(edited_png: bytes) -> None:
    response = SimpleNamespace(
        candidates=[
            SimpleNamespace(content=SimpleNamespace(parts=[_text_part("first")])),
            SimpleNamespace(content=SimpleNamespace(parts=[_image_part(edited_png)])),
        ],
        text="first",
    )

    assert extract_image(response) == edited_png


def test_factory_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        build_image_editor({"GEMINI_API_KEY": ""})


def test_factory_builds_gemini_client() -> None:
    editor = build_image_editor({"GEMINI_API_KEY": "test-key", "GEMINI_MODEL": "custom-model"})

    assert isinstance(editor, GeminiEditClient)
    assert editor.model_name == "custom-model"
    assert editor.available is True


@pytest.mark.asyncio
async def test_request_timing_is_logged_with_the_result(
    png_bytes: bytes, edited_png: bytes, caplog
) -> None:
    caplog.set_level(logging.DEBUG, logger="services.ai.gemini")
    client = GeminiEditClient(api_key="", client=_fake_client(_response(_image_part(edited_png))))

    await client.request_edit(png_bytes, "image/png", "Remove background")

    timing = [r for r in caplog.records if r.getMessage().startswith("[Timing] gemini generate_content")]
    assert [r.levelno for r in timing] == [logging.DEBUG]
    generated = [r for r in caplog.records if "[Gemini] image generated" in r.getMessage()]
    assert len(generated) == 1
    assert generated[0].getMessage().endswith(" ms")
