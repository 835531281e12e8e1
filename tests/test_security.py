import pytest

from transcript_gateway.app.core.security import authenticate, validate_video_id
from transcript_gateway.app.exceptions import (
    InvalidFormatError,
    MissingParameterError,
    ServerMisconfiguredError,
    UnauthorizedError,
)


class TestAuthenticate:

    def test_matching_key_passes(self):
        assert authenticate("s3cret", "s3cret") is None

    @pytest.mark.parametrize("presented", [None, "", "s3cret", "anything"])
    def test_missing_secret_fails_closed(self, presented):
        with pytest.raises(ServerMisconfiguredError) as exc_info:
            authenticate(presented, None)
        assert exc_info.value.status_code == 500

    def test_empty_secret_counts_as_missing(self):
        with pytest.raises(ServerMisconfiguredError):
            authenticate("", "")

    @pytest.mark.parametrize("presented", [None, "", "S3CRET", "s3cret ", "s3cre", "s3cret-and-more"])
    def test_wrong_or_missing_key_is_unauthorized(self, presented):
        with pytest.raises(UnauthorizedError) as exc_info:
            authenticate(presented, "s3cret")
        assert exc_info.value.status_code == 401

    def test_non_ascii_keys_compare_safely(self):
        authenticate("clé-secrète", "clé-secrète")
        with pytest.raises(UnauthorizedError):
            authenticate("clé", "clé-secrète")


class TestValidateVideoId:

    @pytest.mark.parametrize(
        "video_id",
        ["AAAAAAAAAAA", "dQw4w9WgXcQ", "a-b_c-d_e-f", "___________", "0123456789Z"],
    )
    def test_accepts_eleven_chars_of_allowed_alphabet(self, video_id):
        assert validate_video_id(video_id) == video_id

    @pytest.mark.parametrize("video_id", [None, ""])
    def test_missing(self, video_id):
        with pytest.raises(MissingParameterError) as exc_info:
            validate_video_id(video_id)
        assert exc_info.value.message == "Missing videoId"

    @pytest.mark.parametrize(
        "video_id",
        [
            "short",
            "AAAAAAAAAA",       # 10
            "AAAAAAAAAAAA",     # 12
            "AAAAAAAAAA!",
            "AAAAA AAAAA",
            "AAAAAAAAAA/",
            "AAAAAAAAAA.",
            "AAAAAAAAAAA\n",
            "ÄAAAAAAAAAA",
            "../../etc/p",
        ],
    )
    def test_rejects_other_lengths_and_characters(self, video_id):
        with pytest.raises(InvalidFormatError) as exc_info:
            validate_video_id(video_id)
        assert exc_info.value.message == "Invalid videoId format"
        assert exc_info.value.status_code == 400
