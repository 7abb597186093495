#!/usr/bin/env python3
"""
Tests for the JPEG file frame consumer
"""

from rtsp_client import DataFrame, JpegFrameWriter


def frame(sequence, payload=b'\xff\xd8\xff\xd9'):
    return DataFrame(payload_type=26, marker=True, sequence=sequence,
                     timestamp=sequence * 3600, payload=payload)


class TestJpegFrameWriter:

    def test_creates_output_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        JpegFrameWriter(target)
        assert target.is_dir()

    def test_writes_one_file_per_frame(self, tmp_path):
        writer = JpegFrameWriter(tmp_path)

        writer(frame(7, b'\xff\xd8first\xff\xd9'))
        writer(frame(8))

        assert (tmp_path / "frame_00007.jpg").read_bytes() == b'\xff\xd8first\xff\xd9'
        assert (tmp_path / "frame_00008.jpg").exists()

        stats = writer.get_stats()
        assert stats['frames_written'] == 2
        assert stats['bytes_written'] == 9 + 4
        assert stats['last_sequence'] == 8

    def test_custom_prefix(self, tmp_path):
        writer = JpegFrameWriter(tmp_path, prefix="cam1")
        assert writer.path_for(frame(42)).name == "cam1_00042.jpg"
