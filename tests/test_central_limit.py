import math

import numpy as np
import pytest

from statdemos import central_limit as c


@pytest.mark.parametrize("n", [1, 2, 5, 12])
def test_standardized_sum_moments(n):
    values = c.standardized_sum(n, 200_000, np.random.default_rng(n))
    assert values.shape == (200_000,)
    assert values.mean() == pytest.approx(0.0, abs=0.01)
    assert values.var() == pytest.approx(1.0, rel=0.02)


@pytest.mark.parametrize("n", [1, 3, 7])
def test_standardized_sum_bounded(n):
    values = c.standardized_sum(n, 50_000, np.random.default_rng(0))
    assert np.all(np.abs(values) <= math.sqrt(3.0 * n))


def test_standardized_sum_invalid():
    with pytest.raises(ValueError):
        c.standardized_sum(0, 10)
    with pytest.raises(ValueError):
        c.standardized_sum(2, -1)


def test_histograms_shape_and_totals():
    edges, hists = c.clt_histograms(4, 20_000, 100, -10.0, 10.0, np.random.default_rng(3))
    assert len(edges) == 101
    assert edges[0] == -10.0 and edges[-1] == 10.0
    assert len(hists) == 4
    for counts in hists:
        assert counts.shape == (100,)
        assert int(counts.sum()) == 20_000


def test_histograms_empty_outside_range():
    edges, hists = c.clt_histograms(2, 10_000, 200, -10.0, 10.0, np.random.default_rng(4))
    centers = 0.5 * (edges[:-1] + edges[1:])
    for n, counts in enumerate(hists, start=1):
        outside = np.abs(centers) > math.sqrt(3.0 * n) + (edges[1] - edges[0])
        assert counts[outside].sum() == 0


def test_histograms_invalid_binning():
    with pytest.raises(ValueError):
        c.clt_histograms(2, 10, 0, -1.0, 1.0)
    with pytest.raises(ValueError):
        c.clt_histograms(2, 10, 10, 1.0, -1.0)


def test_main_writes_both_files(tmp_path):
    pdf = tmp_path / "clt.pdf"
    image = tmp_path / "clt.png"
    code = c.main(
        ["--max-n", "4", "--samples", "2000", "--bins", "50", "--seed", "1",
         "--pdf", str(pdf), "--image", str(image)]
    )
    assert code == 0
    assert pdf.stat().st_size > 0
    assert image.stat().st_size > 0