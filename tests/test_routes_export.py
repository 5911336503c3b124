"""
Tests for api/routes/export.py — POST /export/midi.

Validates:
    - A generated progression posts back and downloads as audio/midi
    - Content-Disposition carries the sanitised filename
    - Melody switches the file to Type 1
    - Empty or invalid progressions → 422
"""

from ingestion.midi_export import midi_bytes_to_summary


def _generate(api_client, **body):
    return api_client.post("/generate/progression", json=body).json()


class TestExportMidi:
    def test_download(self, api_client):
        progression = _generate(api_client, key="C#/Db", scale="major", template="I-V-vi-IV")
        resp = api_client.post("/export/midi", json={"progression": progression})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "audio/midi"
        assert resp.headers["content-disposition"] == (
            'attachment; filename="progression_C#-Db_major.mid"'
        )
        assert resp.content[:4] == b"MThd"

    def test_chords_only_is_type_0(self, api_client):
        progression = _generate(api_client, template="ii-V-I")
        summary = midi_bytes_to_summary(
            api_client.post("/export/midi", json={"progression": progression}).content
        )
        assert summary["type"] == 0
        assert summary["note_on_counts"] == [9]

    def test_melody_is_type_1(self, api_client):
        progression = _generate(api_client, template="ii-V-I", generate_melody=True, seed=5)
        summary = midi_bytes_to_summary(
            api_client.post("/export/midi", json={"progression": progression}).content
        )
        assert summary["type"] == 1
        assert summary["track_count"] == 2

    def test_tempo_written(self, api_client):
        progression = _generate(api_client, template="ii-V-I")
        progression["tempo"] = 90.0
        summary = midi_bytes_to_summary(
            api_client.post("/export/midi", json={"progression": progression}).content
        )
        assert summary["tempo_bpm"] == 90.0

    def test_empty_progression_422(self, api_client):
        body = {"progression": {"key": "C", "scale": "major", "chords": []}}
        assert api_client.post("/export/midi", json=body).status_code == 422

    def test_descending_notes_422(self, api_client):
        body = {
            "progression": {
                "key": "C",
                "scale": "major",
                "chords": [{"root": 0, "quality": "maj", "midi_notes": [55, 52, 48]}],
            }
        }
        assert api_client.post("/export/midi", json=body).status_code == 422
