"""Tests for TwiML/ExoML call-flow documents."""

from voicecall.telephony import callflow


class TestTwimlForText:
    def test_reads_cleaned_text(self) -> None:
        xml = callflow.twiml_for_text("Hello <b>World</b> & friends")

        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert '<Say voice="alice" rate="medium">' in xml
        assert "Here is your message: Hello bWorld/b  friends." not in xml
        assert "Here is your message: Hello bWorld/b friends." in xml
        assert '<break time="1s"/>' in xml

    def test_collapses_newlines(self) -> None:
        xml = callflow.twiml_for_text("line one\n\n  line   two")
        assert "line one line two." in xml

    def test_blank_text_yields_error_document(self) -> None:
        xml = callflow.twiml_for_text("  <>&  ")

        assert "Here is your message" not in xml
        assert "<Say" in xml
        assert "Error" in xml


class TestTwimlForAudio:
    def test_plays_escaped_url(self) -> None:
        xml = callflow.twiml_for_audio("https://x.example/audio/a.mp3?x=1&y=2")

        assert "<Play>https://x.example/audio/a.mp3?x=1&amp;y=2</Play>" in xml
        assert xml.count('<Say voice="alice">') == 2

    def test_missing_audio(self) -> None:
        for audio in (None, "", "   "):
            xml = callflow.twiml_for_audio(audio)
            assert "<Play>" not in xml
            assert "Error: No audio URL provided." in xml


class TestExomlForAudio:
    def test_structure(self) -> None:
        xml = callflow.exoml_for_audio("https://x.example/audio/a.mp3")

        say = xml.index('<Say voice="woman">Hello!')
        pause = xml.index('<Pause length="1"/>')
        play = xml.index("<Play>https://x.example/audio/a.mp3</Play>")
        farewell = xml.index("Goodbye!")
        assert say < pause < play < farewell

    def test_missing_audio(self) -> None:
        xml = callflow.exoml_for_audio("")

        assert "<Play>" not in xml
        assert '<Say voice="woman">Error: No audio URL provided.</Say>' in xml


class TestErrorDocuments:
    def test_error_messages_are_cleaned(self) -> None:
        assert "<Say voice=\"alice\">bad input</Say>" in callflow.twiml_error("bad <input>")
        assert "<Say voice=\"woman\">a b</Say>" in callflow.exoml_error("a\n&b")
