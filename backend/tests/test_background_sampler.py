from __future__ import annotations

import pytest

from pdfsurgeon.models.text import WHITE
from pdfsurgeon.services.buffers import load_document
from pdfsurgeon.services.rendering import BackgroundSampler


def test_samples_page_fill_color(make_pdf):
    document = load_document(make_pdf([b"0.5 0.5 0.5 rg 0 0 612 792 re f"]))

    with BackgroundSampler(document) as sampler:
        color = sampler.sample(0, (100, 100, 150, 120))

    assert color == pytest.approx((0.5, 0.5, 0.5), abs=0.02)


def test_plain_page_samples_white(hello_pdf):
    with BackgroundSampler(load_document(hello_pdf)) as sampler:
        assert sampler.sample(0, (300, 300, 350, 320)) == pytest.approx(WHITE, abs=0.01)


def test_disabled_sampler_returns_white(make_pdf):
    document = load_document(make_pdf([b"0 0 0 rg 0 0 612 792 re f"]))
    with BackgroundSampler(document, enabled=False) as sampler:
        assert sampler.sample(0, (100, 100, 150, 120)) == WHITE
