"""
Tests for the sliding-window chunker.

Covers clamping of size/overlap, whitespace normalisation, coverage of the
normalised text and the loop's termination bound.
"""

import math
import string

import pytest

from services.rag_pipeline.Chunker import MIN_CHUNK_SIZE, chunk_text, clamp_window, normalize_text


def _document(length: int) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(alphabet[i % len(alphabet)] for i in range(length))


class TestClampWindow:

    def test_size_is_raised_to_floor(self):
        assert clamp_window(10, 0) == (MIN_CHUNK_SIZE, 0)

    def test_negative_overlap_becomes_zero(self):
        assert clamp_window(300, -5) == (300, 0)

    def test_overlap_is_kept_below_size(self):
        assert clamp_window(300, 300) == (300, 299)
        assert clamp_window(50, 1000) == (MIN_CHUNK_SIZE, MIN_CHUNK_SIZE - 1)


class TestNormalizeText:

    def test_collapses_whitespace_runs_and_trims(self):
        assert normalize_text("  Blood \n\n pressure\t\tcontrol \r\n") == "Blood pressure control"


class TestChunkText:

    def test_empty_input_yields_no_chunks(self):
        assert chunk_text("", 350, 60) == []
        assert chunk_text(" \n\t ", 350, 60) == []

    def test_short_text_is_single_chunk(self):
        text = "Hypertension   is defined\nas sustained elevated blood pressure."
        assert chunk_text(text, 350, 60) == [normalize_text(text)]

    def test_text_exactly_size_long_is_single_chunk(self):
        text = _document(350)
        assert chunk_text(text, 350, 60) == [text]

    def test_900_characters_with_350_and_60(self):
        text = _document(900)

        chunks = chunk_text(text, 350, 60)

        assert len(chunks) == 3
        assert all(len(chunk) <= 350 for chunk in chunks)
        assert chunks[0] == text[0:350]
        assert chunks[1] == text[290:640]
        assert chunks[2] == text[580:900]
        for previous, current in zip(chunks, chunks[1:]):
            assert previous[-60:] == current[:60]

    def test_chunks_refer_to_normalised_text(self):
        text = "word\n\n" * 200
        clean = normalize_text(text)

        chunks = chunk_text(text, 250, 20)

        assert all("\n" not in chunk for chunk in chunks)
        assert chunks[-1].endswith(clean[-10:])

    def test_is_pure(self):
        text = _document(1234)
        assert chunk_text(text, 300, 50) == chunk_text(text, 300, 50)

    @pytest.mark.parametrize("length,size,overlap", [
        (1, 200, 0),
        (201, 200, 0),
        (999, 350, 60),
        (5000, 200, 199),
        (4096, 512, 128),
        (777, 10, 500),
    ])
    def test_coverage_and_progress(self, length, size, overlap):
        text = _document(length)
        eff_size, eff_overlap = clamp_window(size, overlap)

        chunks = chunk_text(text, size, overlap)

        # every chunk is a non-empty slice no longer than size
        assert all(0 < len(chunk) <= eff_size for chunk in chunks)
        # rebuild the text: each chunk after the first repeats exactly `overlap` characters
        rebuilt = chunks[0] + "".join(chunk[eff_overlap:] for chunk in chunks[1:])
        assert rebuilt == text
        assert text.endswith(chunks[-1])
        # loop bound
        assert len(chunks) <= math.ceil(length / (eff_size - eff_overlap))
