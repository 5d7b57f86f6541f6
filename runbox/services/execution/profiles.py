"""
Language profile registry.

Maps a language identifier to the container image and command that run it.
User source never ends up inside a shell string: interpreted languages get it
as a plain argv element, compiled ones get it as a file uploaded into the
container before start, and run a constant shell command on that file.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .errors import NotSupportedError

CommandBuilder = Callable[[str], List[str]]


@dataclass(frozen=True)
class LanguageProfile:
    """Static execution configuration for one supported language"""
    identifier: str
    image: str
    command_builder: CommandBuilder
    # When set, the source is delivered as this file in the working directory
    source_file: Optional[str] = None

    def build_command(self, code: str) -> List[str]:
        return list(self.command_builder(code))


def _inline(interpreter: str, flag: str) -> CommandBuilder:
    def build(code: str) -> List[str]:
        return [interpreter, flag, code]
    return build


def _fixed(command: str) -> CommandBuilder:
    def build(code: str) -> List[str]:
        return ["sh", "-c", command]
    return build


DEFAULT_PROFILES = (
    LanguageProfile(
        identifier="js",
        image="node:14",
        command_builder=_inline("node", "-e"),
    ),
    LanguageProfile(
        identifier="python",
        image="python:3.9",
        command_builder=_inline("python", "-c"),
    ),
    LanguageProfile(
        identifier="cpp",
        image="gcc:latest",
        command_builder=_fixed("g++ main.cpp -o main && ./main"),
        source_file="main.cpp",
    ),
    LanguageProfile(
        identifier="ts",
        image="node:14",
        command_builder=_fixed(
            "npm install -g typescript >/dev/null && tsc main.ts && node main.js"
        ),
        source_file="main.ts",
    ),
)


class LanguageRegistry:
    """
    Read-only lookup table of language profiles.

    Built once at startup and shared by every request; nothing mutates it
    afterwards, so no locking is needed.
    """

    def __init__(self, profiles: Iterable[LanguageProfile]):
        table: Dict[str, LanguageProfile] = {}
        for profile in profiles:
            if profile.identifier in table:
                raise ValueError(f"Duplicate language profile: {profile.identifier}")
            table[profile.identifier] = profile
        self._profiles: Mapping[str, LanguageProfile] = MappingProxyType(table)

    @classmethod
    def default(cls, image_overrides: Optional[Mapping[str, str]] = None) -> "LanguageRegistry":
        """Registry of the built-in profiles, with optional image overrides."""
        overrides = image_overrides or {}
        profiles = []
        for profile in DEFAULT_PROFILES:
            image = overrides.get(profile.identifier, profile.image)
            profiles.append(
                LanguageProfile(
                    identifier=profile.identifier,
                    image=image,
                    command_builder=profile.command_builder,
                    source_file=profile.source_file,
                )
            )
        return cls(profiles)

    def resolve(self, language: str) -> LanguageProfile:
        try:
            return self._profiles[language]
        except (KeyError, TypeError):
            raise NotSupportedError(language) from None

    def supported(self) -> List[str]:
        return sorted(self._profiles)
