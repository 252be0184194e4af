"""Media download and transcription job API."""
