"""Speech synthesis package (ElevenLabs text-to-speech and the audio store)."""
