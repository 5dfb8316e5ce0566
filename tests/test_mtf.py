import random

import pytest

from bwt_pipeline import (
    inverse_move_to_front_transform,
    move_to_front_transform,
    mtf_decode,
    mtf_encode,
)


def test_abc_indices():
    res = move_to_front_transform("abc")
    assert res.transformed == "0,1,2"
    assert res.metadata.alphabet == ("a", "b", "c")
    assert res.primary_index == 0


def test_banana_indices_and_average():
    res = move_to_front_transform("banana")
    assert res.metadata.alphabet == ("a", "b", "n")
    assert res.transformed == "1,1,2,1,1,1"
    assert res.metadata.average_index == pytest.approx(7 / 6)


def test_repeated_symbol_emits_zeros():
    assert mtf_encode("aaab", ["a", "b"]) == [0, 0, 0, 1]


def test_empty_input():
    res = move_to_front_transform("")
    assert res.transformed == ""
    assert res.metadata.alphabet == ()
    assert res.metadata.average_index == 0.0
    assert inverse_move_to_front_transform("", ()) == ""


def test_inverse_uses_given_alphabet():
    assert inverse_move_to_front_transform("0,0", ("x", "y")) == "xx"
    assert mtf_decode([1, 1], ["x", "y"]) == "yx"


def test_round_trip():
    rng = random.Random(11)
    for _ in range(40):
        text = "".join(rng.choice("abcdefghijk,0123 ") for _ in range(rng.randint(1, 60)))
        res = move_to_front_transform(text)
        assert inverse_move_to_front_transform(res.transformed, res.metadata.alphabet) == text


def test_malformed_index_string():
    with pytest.raises(ValueError):
        inverse_move_to_front_transform("0,a", ("a", "b"))
    with pytest.raises(ValueError):
        inverse_move_to_front_transform("0,,1", ("a", "b"))


def test_index_out_of_range():
    with pytest.raises(ValueError):
        inverse_move_to_front_transform("0,2", ("a", "b"))
    with pytest.raises(ValueError):
        mtf_decode([-1], ["a"])
