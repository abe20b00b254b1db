from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

_LOG = logging.getLogger(__name__)


class TonePlayer:
    """Play a short alert tone.

    With a ``sound_file`` the file is played through an external command
    (``aplay`` by default); without one the terminal bell is rung on
    ``stream``.
    """

    def __init__(
        self,
        sound_file: Optional[Path] = None,
        command: Sequence[str] = ("aplay", "-q"),
        stream: Optional[TextIO] = None,
        timeout_s: float = 5.0,
    ) -> None:
        self.sound_file = Path(sound_file) if sound_file else None
        self.command = list(command)
        self._stream = stream
        self.timeout_s = timeout_s

    def play(self) -> None:
        if self.sound_file is None:
            stream = self._stream or sys.stdout
            stream.write("\a")
            stream.flush()
            return

        _LOG.debug("Playing alert tone: %s", self.sound_file.name)
        subprocess.run(
            [*self.command, str(self.sound_file)],
            capture_output=True,
            check=True,
            timeout=self.timeout_s,
        )


class SpeechAnnouncer:
    """Speak a short message through a command-line speech engine.

    The first engine found on PATH is used. When none is installed the
    announcer is simply unavailable: ``speak`` returns False and nothing is
    raised.
    """

    DEFAULT_ENGINES = ("spd-say", "espeak-ng", "espeak", "say")

    def __init__(
        self,
        engines: Sequence[str] = DEFAULT_ENGINES,
        extra_args: Sequence[str] = (),
    ) -> None:
        self.extra_args = list(extra_args)
        self._exe: Optional[str] = None
        for name in engines:
            found = shutil.which(name)
            if found:
                self._exe = found
                break
        if self._exe is None:
            _LOG.info("No speech engine found on PATH (tried %s)", ", ".join(engines))
        else:
            _LOG.info("Using speech engine %s", self._exe)

    @property
    def available(self) -> bool:
        return self._exe is not None

    def build_command(self, text: str) -> List[str]:
        if self._exe is None:
            raise RuntimeError("no speech engine available")
        return [self._exe, *self.extra_args, text]

    def speak(self, text: str) -> bool:
        if self._exe is None:
            return False
        # Fire-and-forget: the engine runs detached from the caller.
        subprocess.Popen(
            self.build_command(text),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return True
