import pytest

from institute.errors import ValidationError
from institute.messaging import WhatsAppChannel, build_chat_url


def test_local_number_gets_country_code():
    url = build_chat_url("98765 43210", "Hi there!")
    assert url == "https://wa.me/919876543210?text=Hi%20there%21"


def test_number_with_country_code_is_kept():
    assert build_chat_url("+91 98765-43210", "x").startswith("https://wa.me/919876543210?")


def test_leading_trunk_zero_is_dropped():
    assert build_chat_url("09876543210", "x", country_code="91").startswith("https://wa.me/919876543210?")


def test_text_is_fully_encoded():
    url = build_chat_url("9876543210", "Hi Ravi! 👋\n\nRenew & save")
    assert "\n" not in url
    assert "%0A%0A" in url
    assert "%26" in url


def test_number_without_digits_is_rejected():
    with pytest.raises(ValidationError):
        build_chat_url("n/a", "x")


async def test_channel_opens_link_with_opener():
    opened = []
    channel = WhatsAppChannel(country_code="91", opener=opened.append)
    await channel.open_external_thread("9876543210", "Hello")
    assert opened == ["https://wa.me/919876543210?text=Hello"]
