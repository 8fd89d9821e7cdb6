"""Audio/Text-to-speech module for Campus Navigator."""

import subprocess
from typing import Optional, Callable


class Audio:
    """Text-to-speech for guidance announcements.

    announce() is fire-and-forget: a new announcement cuts off the one still
    being spoken instead of queueing behind it.
    """

    callback: Optional[Callable[[str], None]] = None  # Class-level callback for debug GUI

    def __init__(self, rate: int = 150):
        self.rate = rate
        self._process: Optional[subprocess.Popen] = None
        self._engine = None

    @classmethod
    def set_callback(cls, callback: Optional[Callable[[str], None]]):
        """Set callback function for audio events"""
        cls.callback = callback

    def cancel(self):
        """Stop whatever is currently being spoken"""
        if self._process and self._process.poll() is None:
            self._process.terminate()
        self._process = None
        if self._engine is not None:
            self._engine.stop()

    def announce(self, text: str):
        """Speak text using espeak (available in Termux)"""
        if Audio.callback:
            Audio.callback(text)

        self.cancel()
        try:
            self._process = subprocess.Popen(
                ["espeak", "-s", str(self.rate), text],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            # Fallback: try pyttsx3
            try:
                import pyttsx3
                if self._engine is None:
                    self._engine = pyttsx3.init()
                    self._engine.setProperty("rate", self.rate)
                self._engine.say(text)
                self._engine.runAndWait()
            except (ImportError, RuntimeError, OSError):
                print(f"[AUDIO] {text}")
        except OSError as e:
            print(f"Audio error: {e}")
            print(f"[AUDIO] {text}")

    def close(self):
        self.cancel()
