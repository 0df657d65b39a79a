"""Test local MP3 tag reading"""

import pytest

from snatcher.audio.metadata import MetadataExtractor, TrackTags, UNKNOWN_ARTIST, tags_from_filename
from snatcher.core.exceptions import DecodeError, NotFoundError


class TestTagsFromFilename:
    """Test the file name fallback"""

    def test_artist_and_title(self):
        """Test the "Artist - Title" convention"""
        assert tags_from_filename("/music/Daft Punk - One More Time.mp3") == TrackTags(
            artist="Daft Punk", title="One More Time")

    def test_title_with_separator(self):
        """Test that extra separators stay in the title"""
        tags = tags_from_filename("Artist - Song - Live.mp3")
        assert tags.artist == "Artist"
        assert tags.title == "Song - Live"

    def test_no_separator(self):
        """Test a name without artist"""
        assert tags_from_filename("track01.mp3") == TrackTags(artist=UNKNOWN_ARTIST, title="track01")


class TestMetadataExtractor:
    """Test tag and file info extraction"""

    def test_extract_falls_back_on_unreadable_file(self, temp_dir):
        """Test that a file mutagen cannot parse yields file name tags"""
        path = temp_dir / "Band - Anthem.mp3"
        path.write_bytes(b"not really audio")

        tags = MetadataExtractor().extract(path)
        assert tags.artist == "Band"
        assert tags.title == "Anthem"
        assert tags.album == ""

    def test_file_info_missing(self, temp_dir):
        """Test file info of a missing file"""
        with pytest.raises(NotFoundError):
            MetadataExtractor().file_info(temp_dir / "absent.mp3")

    def test_file_info_not_mp3(self, temp_dir):
        """Test file info of a file that is not MP3"""
        path = temp_dir / "fake.mp3"
        path.write_bytes(b"plain text, no frames at all")

        with pytest.raises(DecodeError):
            MetadataExtractor().file_info(path)
