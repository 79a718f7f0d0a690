"""配图地址与文件名派生规则测试。"""

import os

import pytest

from ai_deck.common.utils import build_image_url, deck_filename, init_api_key


def test_image_url_trims_and_encodes_query():
    url = build_image_url(" cat, box ")
    assert url == "https://loremflickr.com/800/600/cat%2C%20box,professional,stock/all"


def test_image_url_keeps_plain_keywords_readable():
    assert build_image_url("synapse,circuitry") == (
        "https://loremflickr.com/800/600/synapse%2Ccircuitry,professional,stock/all"
    )


def test_image_url_is_total_for_empty_query():
    assert build_image_url("   ") == "https://loremflickr.com/800/600/,professional,stock/all"


def test_image_url_custom_service():
    url = build_image_url("sun", base_url="http://images.local/", width=400, height=300)
    assert url == "http://images.local/400/300/sun,professional,stock/all"


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Q1 Report", "Q1_Report.pptx"),
        ("The  Future\tof AI", "The_Future_of_AI.pptx"),
        ("Solo", "Solo.pptx"),
        ("AI/ML Trends 2025", "AI_ML_Trends_2025.pptx"),
        ("../../etc/passwd", ".._.._etc_passwd.pptx"),
        ("Q&A: What?", "Q&A__What_.pptx"),
    ],
)
def test_deck_filename(title, expected):
    assert deck_filename(title) == expected


def test_init_api_key_accepts_gemini_alias(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    init_api_key()
    assert os.environ["GOOGLE_API_KEY"] == "secret"


def test_init_api_key_requires_credential(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(ValueError):
        init_api_key()
