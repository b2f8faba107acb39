"""package.xml / destructiveChanges.xml documents.

Both manifests share one shape: ``<types>`` blocks (members then name) and a
trailing ``<version>``. Output is sorted so equal manifests serialize to the
same bytes.
"""
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from xml.dom.minidom import parseString

xmlns = "http://soap.sforce.com/2006/04/metadata"
ns = {"sforce": xmlns}


@dataclass(frozen=True, order=True)
class MetadataMember:
    type: str
    name: str

    def __str__(self) -> str:
        return f"{self.type}:{self.name}"


@dataclass
class Manifest:
    version: str
    types: dict[str, set[str]] = field(default_factory=dict)

    @classmethod
    def from_members(cls, members, version: str) -> "Manifest":
        manifest = cls(version=version)
        for member in members:
            manifest.add(member.type, member.name)
        return manifest

    def add(self, type_name: str, member: str) -> None:
        self.types.setdefault(type_name, set()).add(member)

    @property
    def type_names(self) -> list[str]:
        return sorted(self.types)

    @property
    def members(self) -> list[MetadataMember]:
        return sorted(
            MetadataMember(type_name, name)
            for type_name, names in self.types.items()
            for name in names
        )

    def is_empty(self) -> bool:
        return not any(self.types.values())

    def to_element(self) -> ET.Element:
        root = ET.Element("Package", xmlns=xmlns)
        for type_name in self.type_names:
            if not self.types[type_name]:
                continue
            types = ET.SubElement(root, "types")
            for name in sorted(self.types[type_name]):
                ET.SubElement(types, "members").text = name
            ET.SubElement(types, "name").text = type_name
        ET.SubElement(root, "version").text = self.version
        return root

    def to_xml(self) -> bytes:
        rough_string = ET.tostring(self.to_element(), encoding="utf-8")
        return parseString(rough_string).toprettyxml(indent="    ", encoding="UTF-8")

    def write(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_xml())
        return path


def parse_manifest(xml_text) -> Manifest:
    """Parse a package.xml string/bytes, with or without the metadata namespace.

    Wildcard members are kept as-is; a missing ``<version>`` becomes "".
    """
    root = ET.fromstring(xml_text)
    prefix = "sforce:" if root.tag.startswith("{") else ""
    manifest = Manifest(version="")

    for types in root.findall(f"{prefix}types", ns):
        name_node = types.find(f"{prefix}name", ns)
        if name_node is None or not (name_node.text or "").strip():
            continue
        type_name = name_node.text.strip()
        for member in types.findall(f"{prefix}members", ns):
            if member.text and member.text.strip():
                manifest.add(type_name, member.text.strip())

    version = root.find(f"{prefix}version", ns)
    if version is not None and version.text:
        manifest.version = version.text.strip()
    return manifest


def read_manifest(path: Path) -> Manifest:
    return parse_manifest(Path(path).read_bytes())
