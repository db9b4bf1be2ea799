import base64

import pytest

from errors import EntropyUnavailable
from identifiers import IDENTIFIER_ALPHABET, new_identifier


def _raw(identifier):
    return base64.urlsafe_b64decode(identifier + "=" * (-len(identifier) % 4))


def test_default_identifier_is_url_safe_and_128_bits():
    identifier = new_identifier()
    assert len(_raw(identifier)) == 16
    assert set(identifier) <= IDENTIFIER_ALPHABET
    assert "=" not in identifier


def test_minimum_entropy_is_enforced():
    assert len(_raw(new_identifier(120))) == 15
    with pytest.raises(ValueError):
        new_identifier(64)


def test_identifiers_do_not_repeat():
    identifiers = {new_identifier() for _ in range(2000)}
    assert len(identifiers) == 2000


def test_consecutive_identifiers_are_independent():
    # Consecutive 128-bit values should differ in about half their bits
    pairs = 500
    total = 0
    previous = int.from_bytes(_raw(new_identifier()), "big")
    for _ in range(pairs):
        current = int.from_bytes(_raw(new_identifier()), "big")
        total += bin(previous ^ current).count("1")
        previous = current
    mean_distance = total / pairs
    assert 61 < mean_distance < 67


def test_bits_are_balanced():
    ones = 0
    samples = 1000
    for _ in range(samples):
        ones += bin(int.from_bytes(_raw(new_identifier()), "big")).count("1")
    ratio = ones / (samples * 128)
    assert 0.49 < ratio < 0.51


def test_missing_entropy_source_raises(monkeypatch):
    def broken(n):
        raise NotImplementedError("no urandom")

    monkeypatch.setattr("identifiers.secrets.token_bytes", broken)
    with pytest.raises(EntropyUnavailable):
        new_identifier()
