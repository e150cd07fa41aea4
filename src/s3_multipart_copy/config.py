import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from s3_multipart_copy.s3.types import S3Credentials, S3Provider


@dataclass
class Section:
    name: str
    data: Dict[str, str] = field(default_factory=dict)

    def add(self, key: str, value: str) -> None:
        self.data[key] = value

    def type(self) -> str:
        return self.data["type"]

    def provider(self) -> str | None:
        return self.data.get("provider")

    def access_key_id(self) -> str:
        if "access_key_id" in self.data:
            return self.data["access_key_id"]
        elif "account" in self.data:
            return self.data["account"]
        raise KeyError("No access key found")

    def secret_access_key(self) -> str:
        if "secret_access_key" in self.data:
            return self.data["secret_access_key"]
        elif "key" in self.data:
            return self.data["key"]
        raise KeyError("No secret access key found")

    def endpoint(self) -> str | None:
        return self.data.get("endpoint")

    def region(self) -> str | None:
        return self.data.get("region")

    def s3_credentials(self) -> S3Credentials:
        """Build S3 credentials from an s3 or b2 remote section."""
        section_type = self.type()
        if section_type not in ("s3", "b2"):
            raise ValueError(
                f"Remote {self.name} is not an S3 remote, it is of type {section_type}"
            )
        provider: str | None = self.provider()
        if provider is None:
            if section_type == "b2":
                provider = S3Provider.BACKBLAZE.value
            else:
                provider = S3Provider.S3.value
        return S3Credentials(
            provider=S3Provider.from_str(provider),
            access_key_id=self.access_key_id(),
            secret_access_key=self.secret_access_key(),
            region_name=self.region(),
            endpoint_url=self.endpoint(),
        )


@dataclass
class Parsed:
    sections: dict[str, Section]

    @staticmethod
    def parse(content: str) -> "Parsed":
        return parse_rclone_config(content)


class Config:
    """Remote configuration in rclone's INI format (a JSON dict of sections is also accepted)."""

    def __init__(self, text: str | dict | None) -> None:
        self.text: str
        if text is None:
            self.text = ""
        elif isinstance(text, dict):
            self.text = _json_to_rclone_config_str_or_raise(text)
        else:
            self.text = text

        try:
            new_text = _json_to_rclone_config_str_or_raise(self.text)
            self.text = new_text
        except (ValueError, AssertionError, AttributeError):
            pass

    @staticmethod
    def from_path(path: Path) -> "Config":
        return Config(path.read_text(encoding="utf-8"))

    def parse(self) -> Parsed:
        return Parsed.parse(self.text)

    def section(self, remote: str) -> Section:
        sections = self.parse().sections
        if remote not in sections:
            raise ValueError(
                f"Remote {remote} not found in config, remotes are: {list(sections.keys())}"
            )
        return sections[remote]


def find_conf_file() -> Path | None:
    if os.environ.get("RCLONE_CONFIG"):
        return Path(os.environ["RCLONE_CONFIG"])
    if (conf := Path.cwd() / "rclone.conf").exists():
        return conf
    return None


def parse_rclone_config(content: str) -> Parsed:
    """
    Parses an rclone configuration file into its sections.

    Each section in the file starts with a line like [section_name]
    followed by key=value pairs.
    """
    sections: List[Section] = []
    current_section: Section | None = None

    lines = content.splitlines()
    for line in lines:
        line = line.strip()
        # Skip empty lines and comments (assumed to start with '#' or ';')
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("[") and line.endswith("]"):
            section_name = line[1:-1].strip()
            current_section = Section(name=section_name)
            sections.append(current_section)
        elif "=" in line and current_section is not None:
            # Split only on the first '=' found
            key, value = line.split("=", 1)
            current_section.add(key.strip(), value.strip())

    data: dict[str, Section] = {}
    for section in sections:
        data[section.name] = section
    return Parsed(sections=data)


def _json_to_rclone_config_str_or_raise(json_data: dict | str) -> str:
    """Convert JSON data to rclone config."""
    if isinstance(json_data, str):
        json_data = json.loads(json_data)
    assert isinstance(json_data, dict)
    out = ""
    for key, value in json_data.items():
        out += f"[{key}]\n"
        for k, v in value.items():
            out += f"{k} = {v}\n"
    return out
