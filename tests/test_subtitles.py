from cinemana_cli.models.catalog import SubtitleTrack
from cinemana_cli.utils.subtitles import filter_subtitle_tracks, parse_subtitle_tracks


def _track(lang, fmt):
    return SubtitleTrack(url=f"https://cdn/{lang}.{fmt}", language=lang, format=fmt)


def test_parse_drops_loading_placeholder() -> None:
    payload = {
        "translations": [
            {"file": "https://cdn/subs/ar.srt", "type": "AR"},
            {"file": "https://cdn/defaultImages/loading.gif", "type": "en"},
            {"file": "https://cdn/subs/en.vtt", "name": "en"},
            {"file": "", "type": "fr"},
        ]
    }
    tracks = parse_subtitle_tracks(payload)
    assert [(t.language, t.format) for t in tracks] == [("ar", "srt"), ("en", "vtt")]


def test_parse_tolerates_malformed_payload() -> None:
    assert parse_subtitle_tracks(None) == []
    assert parse_subtitle_tracks({"translations": "nope"}) == []


def test_language_filter() -> None:
    tracks = [_track("ar", "srt"), _track("en", "srt"), _track("fr", "srt")]
    kept = filter_subtitle_tracks(tracks, ["ar", "EN"], "srt")
    assert [t.language for t in kept] == ["ar", "en"]


def test_no_language_filter_keeps_every_language() -> None:
    tracks = [_track("ar", "srt"), _track("en", "vtt")]
    assert len(filter_subtitle_tracks(tracks, [], "srt")) == 2


def test_both_keeps_every_format() -> None:
    tracks = [_track("ar", "srt"), _track("ar", "vtt")]
    assert len(filter_subtitle_tracks(tracks, ["ar"], "both")) == 2


def test_preferred_format_then_first_available() -> None:
    tracks = [_track("ar", "srt"), _track("ar", "vtt"), _track("en", "srt")]
    kept = filter_subtitle_tracks(tracks, None, "vtt")
    assert [(t.language, t.format) for t in kept] == [("ar", "vtt"), ("en", "srt")]
