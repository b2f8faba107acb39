from sfdelta.manifest import Manifest, MetadataMember, parse_manifest, read_manifest

EXPECTED = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<Package xmlns="http://soap.sforce.com/2006/04/metadata">\n'
    "    <types>\n"
    "        <members>Bar</members>\n"
    "        <members>Foo</members>\n"
    "        <name>classes</name>\n"
    "    </types>\n"
    "    <types>\n"
    "        <members>Home</members>\n"
    "        <name>flows</name>\n"
    "    </types>\n"
    "    <version>63.0</version>\n"
    "</Package>\n"
)


def test_types_and_members_are_sorted() -> None:
    members = [
        MetadataMember("flows", "Home"),
        MetadataMember("classes", "Foo"),
        MetadataMember("classes", "Bar"),
    ]
    xml = Manifest.from_members(members, "63.0").to_xml().decode("utf-8")
    assert xml == EXPECTED


def test_output_does_not_depend_on_input_order() -> None:
    members = [
        MetadataMember("classes", "Foo"),
        MetadataMember("flows", "Home"),
        MetadataMember("classes", "Bar"),
        MetadataMember("classes", "Foo"),
    ]
    first = Manifest.from_members(members, "63.0").to_xml()
    second = Manifest.from_members(list(reversed(members)), "63.0").to_xml()
    assert first == second


def test_empty_manifest_has_only_version() -> None:
    xml = Manifest(version="63.0").to_xml().decode("utf-8")
    parsed = parse_manifest(xml)
    assert "<types>" not in xml
    assert "<version>63.0</version>" in xml
    assert parsed.is_empty()
    assert parsed.version == "63.0"


def test_member_names_are_escaped() -> None:
    manifest = Manifest.from_members([MetadataMember("reports", "Q&A <draft>")], "63.0")
    xml = manifest.to_xml().decode("utf-8")
    assert "<members>Q&amp;A &lt;draft&gt;</members>" in xml
    assert parse_manifest(xml).types == {"reports": {"Q&A <draft>"}}


def test_parse_sf_cli_manifest(tmp_path) -> None:
    package = tmp_path / "package.xml"
    package.write_text(
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<Package xmlns="http://soap.sforce.com/2006/04/metadata">\n'
        "  <types>\n"
        "    <members>Foo</members>\n"
        "    <name>ApexClass</name>\n"
        "  </types>\n"
        "  <types>\n"
        "    <members>Account.Region__c</members>\n"
        "    <members>Account.Tier__c</members>\n"
        "    <name>CustomField</name>\n"
        "  </types>\n"
        "  <version>62.0</version>\n"
        "</Package>\n",
        encoding="utf-8",
    )
    manifest = read_manifest(package)
    assert manifest.version == "62.0"
    assert manifest.type_names == ["ApexClass", "CustomField"]
    assert manifest.members[0] == MetadataMember("ApexClass", "Foo")
    assert manifest.types["CustomField"] == {"Account.Region__c", "Account.Tier__c"}


def test_parse_manifest_without_namespace() -> None:
    manifest = parse_manifest(
        "<Package><types><members>*</members><name>Flow</name></types></Package>"
    )
    assert manifest.types == {"Flow": {"*"}}
    assert manifest.version == ""


def test_write_creates_parent_directories(tmp_path) -> None:
    target = tmp_path / "delta" / "destructiveChanges.xml"
    Manifest(version="63.0").write(target)
    assert target.read_bytes().startswith(b'<?xml version="1.0" encoding="UTF-8"?>')


def test_types_without_members_are_dropped() -> None:
    manifest = parse_manifest(
        '<Package xmlns="http://soap.sforce.com/2006/04/metadata">'
        "<types><name>Flow</name></types>"
        "<types><members>Foo</members><name>ApexClass</name></types>"
        "<version>63.0</version></Package>"
    )
    assert manifest.types == {"ApexClass": {"Foo"}}
    assert "<name>Flow</name>" not in manifest.to_xml().decode("utf-8")


def test_empty_member_set_is_not_serialized() -> None:
    manifest = Manifest(version="63.0", types={"Flow": set(), "ApexClass": {"Foo"}})
    xml = manifest.to_xml().decode("utf-8")
    assert xml.count("<types>") == 1
    assert "<name>Flow</name>" not in xml
