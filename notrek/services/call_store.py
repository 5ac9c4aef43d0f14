# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Storage for call scripts and call transcripts.

Call records live in an external datastore in production. The service only
needs the narrow interface below, and the in-memory implementation backs both
local development and tests.
"""

from abc import ABC, abstractmethod

from notrek.models.call import CallScript, TranscriptLine


class CallStore(ABC):
    @abstractmethod
    def save_script(self, script: CallScript) -> None: ...

    @abstractmethod
    def get_script(self, script_id: str) -> CallScript | None: ...

    @abstractmethod
    def append_transcript(self, line: TranscriptLine) -> None: ...

    @abstractmethod
    def list_transcript(self, script_id: str) -> list[TranscriptLine]:
        """Transcript lines for a script, oldest first."""


class InMemoryCallStore(CallStore):
    def __init__(self) -> None:
        self._scripts: dict[str, CallScript] = {}
        self._transcripts: dict[str, list[TranscriptLine]] = {}

    def save_script(self, script: CallScript) -> None:
        self._scripts[script.id] = script

    def get_script(self, script_id: str) -> CallScript | None:
        return self._scripts.get(script_id)

    def append_transcript(self, line: TranscriptLine) -> None:
        self._transcripts.setdefault(line.script_id, []).append(line)

    def list_transcript(self, script_id: str) -> list[TranscriptLine]:
        lines = self._transcripts.get(script_id, [])
        return sorted(lines, key=lambda line: line.created_at)
