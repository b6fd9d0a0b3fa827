#!/usr/bin/env python3
"""
Tests for strings.xml reading, updating and resource collection.

This module tests:
- Locating the res directory of a module
- Collecting values directories into a consolidated table
- Reading <string> entries from a document
- Upserting a single entry without disturbing the rest of the file
"""

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add parent directory to path for module import
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from AndroidStringsExporter import collect_resources, find_resource_root
from errors import ConfigurationError, DocumentWriteError
from resource_document import AndroidStringsDocument, StringEntry


class TestResourceParser(unittest.TestCase):
    """Base class providing a temporary module directory."""

    def setUp(self):
        """Set up a temporary directory for file-based tests."""
        self.temp_dir = tempfile.mkdtemp()
        self.module_dir = os.path.join(self.temp_dir, "app")
        os.makedirs(self.module_dir)

    def tearDown(self):
        """Clean up temporary directory after tests."""
        shutil.rmtree(self.temp_dir)

    def create_strings_xml(self, values_dir, content, res_dir="src/main/res"):
        """Helper method to create a strings.xml file with specified content."""
        path = os.path.join(self.module_dir, res_dir, values_dir, "strings.xml")
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return Path(path)

    def read(self, path):
        with open(path, encoding="utf-8") as f:
            return f.read()


class TestFindResourceRoot(TestResourceParser):
    """Tests for find_resource_root."""

    def test_src_main_res(self):
        os.makedirs(os.path.join(self.module_dir, "src", "main", "res"))
        self.assertEqual(
            find_resource_root(self.module_dir),
            Path(self.module_dir) / "src/main/res",
        )

    def test_plain_res_wins_over_src_main(self):
        os.makedirs(os.path.join(self.module_dir, "res"))
        os.makedirs(os.path.join(self.module_dir, "src", "main", "res"))
        self.assertEqual(find_resource_root(self.module_dir), Path(self.module_dir) / "res")

    def test_debug_res_used_as_fallback(self):
        os.makedirs(os.path.join(self.module_dir, "src", "debug", "res"))
        self.assertEqual(
            find_resource_root(self.module_dir),
            Path(self.module_dir) / "src/debug/res",
        )

    def test_missing_res_directory(self):
        with self.assertRaises(ConfigurationError) as ctx:
            find_resource_root(self.module_dir)
        self.assertIn("src/main/res", str(ctx.exception))

    def test_empty_and_invalid_module_path(self):
        with self.assertRaises(ConfigurationError):
            find_resource_root("")
        with self.assertRaises(ConfigurationError):
            find_resource_root(os.path.join(self.temp_dir, "does-not-exist"))


class TestCollectResources(TestResourceParser):
    """Tests for collect_resources."""

    def test_collects_default_and_locale(self):
        self.create_strings_xml(
            "values",
            '<resources>\n    <string name="a">Hello</string>\n'
            '    <string name="b">World</string>\n</resources>',
        )
        self.create_strings_xml(
            "values-fr", '<resources>\n    <string name="a">Bonjour</string>\n</resources>'
        )

        table = collect_resources(self.module_dir)

        self.assertEqual(table.value("a", "default"), "Hello")
        self.assertEqual(table.value("a", "values-fr"), "Bonjour")
        self.assertNotIn("values-fr", table.get("b"))
        self.assertEqual(table.locales, {"default", "values-fr"})
        self.assertEqual(
            table.documents["values-fr"],
            Path(self.module_dir) / "src/main/res/values-fr/strings.xml",
        )

    def test_no_values_directories_is_an_error(self):
        os.makedirs(os.path.join(self.module_dir, "src", "main", "res", "layout"))
        with self.assertRaises(ConfigurationError):
            collect_resources(self.module_dir)

    def test_skips_directories_without_strings_and_invalid_qualifiers(self):
        self.create_strings_xml(
            "values", '<resources><string name="a">Hello</string></resources>'
        )
        os.makedirs(os.path.join(self.module_dir, "src", "main", "res", "values-de"))
        self.create_strings_xml(
            "values-", '<resources><string name="a">Broken</string></resources>'
        )
        self.create_strings_xml(
            "drawable-fr", '<resources><string name="a">Nope</string></resources>'
        )

        table = collect_resources(self.module_dir)

        self.assertEqual(table.locales, {"default"})

    def test_entity_references_are_unescaped(self):
        self.create_strings_xml(
            "values",
            '<resources>\n'
            '    <string name="amp">Tom &amp; Jerry</string>\n'
            '    <string name="ref">&#169; 2024 &lt;Acme&gt;</string>\n'
            '</resources>',
        )

        table = collect_resources(self.module_dir)

        self.assertEqual(table.value("amp", "default"), "Tom & Jerry")
        self.assertEqual(table.value("ref", "default"), "© 2024 <Acme>")

    def test_malformed_entries_are_skipped(self):
        self.create_strings_xml(
            "values",
            '<resources>\n'
            '    <string>No name</string>\n'
            '    <string name="">Empty name</string>\n'
            '    <string name="ok">Fine</string>\n'
            '    <string name="empty"></string>\n'
            '</resources>',
        )

        table = collect_resources(self.module_dir)

        self.assertEqual(table.keys(), ["empty", "ok"])
        self.assertEqual(table.value("empty", "default"), "")

    def test_untranslatable_strings_are_marked(self):
        self.create_strings_xml(
            "values",
            '<resources>\n'
            '    <string name="app_name" translatable="false">MyApp</string>\n'
            '    <string name="hello">Hello</string>\n'
            '</resources>',
        )

        table = collect_resources(self.module_dir)

        self.assertEqual(table.untranslatable, {"app_name"})
        self.assertEqual(table.value("app_name", "default"), "MyApp")

    def test_invalid_default_xml_is_reported(self):
        self.create_strings_xml("values", "<resources><string name='a'>Oops</resources>")
        with self.assertRaises(ConfigurationError):
            collect_resources(self.module_dir)

    def test_invalid_locale_xml_is_skipped(self):
        self.create_strings_xml(
            "values", '<resources><string name="a">Hello</string></resources>'
        )
        self.create_strings_xml("values-fr", '<resources><string name="a">Oops</resources>')
        self.create_strings_xml(
            "values-de", '<resources><string name="a">Hallo</string></resources>'
        )

        with self.assertLogs("AndroidStringsExporter", level="ERROR") as logs:
            table = collect_resources(self.module_dir)

        self.assertEqual(table.locales, {"default", "values-de"})
        self.assertEqual(table.value("a", "values-de"), "Hallo")
        self.assertIn("values-fr", "\n".join(logs.output))

    def test_only_invalid_locale_xml_is_an_error(self):
        self.create_strings_xml("values-fr", '<resources><string name="a">Oops</resources>')
        with self.assertRaises(ConfigurationError):
            collect_resources(self.module_dir)


class TestReadEntries(TestResourceParser):
    """Tests for AndroidStringsDocument.read_entries."""

    def test_nested_markup_is_kept(self):
        path = self.create_strings_xml(
            "values",
            '<resources xmlns:xliff="urn:oasis:names:tc:xliff:document:1.2">\n'
            '    <string name="bold">Hello <b>World</b>!</string>\n'
            '    <string name="count">Count: <xliff:g id="n">%d</xliff:g> &amp; more</string>\n'
            '</resources>',
        )

        entries = AndroidStringsDocument(path).read_entries()

        self.assertEqual(
            entries,
            [
                StringEntry("bold", "Hello <b>World</b>!", True),
                StringEntry("count", 'Count: <xliff:g id="n">%d</xliff:g> & more', True),
            ],
        )

    def test_plurals_and_arrays_are_ignored(self):
        path = self.create_strings_xml(
            "values",
            '<resources>\n'
            '    <plurals name="days"><item quantity="other">%d days</item></plurals>\n'
            '    <string-array name="planets"><item>Mercury</item></string-array>\n'
            '    <!-- comment -->\n'
            '    <string name="a">A</string>\n'
            '</resources>',
        )

        entries = AndroidStringsDocument(path).read_entries()

        self.assertEqual([entry.name for entry in entries], ["a"])

    def test_wrong_root_element(self):
        path = self.create_strings_xml("values", "<manifest><string name='a'>A</string></manifest>")
        self.assertEqual(AndroidStringsDocument(path).read_entries(), [])


class TestUpsert(TestResourceParser):
    """Tests for AndroidStringsDocument.upsert."""

    ORIGINAL = (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<resources>\n"
        "    <!-- Greetings -->\n"
        '    <string name="a">Bonjour</string>\n'
        '    <string name="c">Au revoir</string>\n'
        "</resources>\n"
    )

    def test_update_existing_in_place(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)

        updated = AndroidStringsDocument(path).upsert("a", "Salut")

        self.assertTrue(updated)
        self.assertEqual(
            self.read(path),
            self.ORIGINAL.replace(">Bonjour<", ">Salut<"),
        )

    def test_append_new_entry(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)

        updated = AndroidStringsDocument(path).upsert("b", "Monde")

        self.assertFalse(updated)
        self.assertEqual(
            self.read(path),
            '<?xml version="1.0" encoding="utf-8"?>\n'
            "<resources>\n"
            "    <!-- Greetings -->\n"
            '    <string name="a">Bonjour</string>\n'
            '    <string name="c">Au revoir</string>\n'
            '    <string name="b">Monde</string>\n'
            "</resources>\n",
        )

    def test_upsert_is_idempotent(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)
        document = AndroidStringsDocument(path)

        document.upsert("b", "Monde")
        after_first = self.read(path)
        document.upsert("b", "Monde")

        self.assertEqual(self.read(path), after_first)
        entries = document.read_entries()
        self.assertEqual([e.name for e in entries].count("b"), 1)
        self.assertEqual(dict((e.name, e.value) for e in entries)["b"], "Monde")

    def test_append_to_empty_resources(self):
        path = self.create_strings_xml("values-fr", "<resources></resources>")

        AndroidStringsDocument(path).upsert("a", "Bonjour")

        self.assertEqual(
            self.read(path),
            '<?xml version="1.0" encoding="utf-8"?>\n'
            "<resources>\n"
            '    <string name="a">Bonjour</string>\n'
            "</resources>",
        )

    def test_special_characters_are_escaped(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)
        document = AndroidStringsDocument(path)

        document.upsert("b", "Tom & Jerry < 3")

        self.assertIn('<string name="b">Tom &amp; Jerry &lt; 3</string>', self.read(path))
        values = dict((e.name, e.value) for e in document.read_entries())
        self.assertEqual(values["b"], "Tom & Jerry < 3")

    def test_inline_markup_is_written_as_markup(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)

        AndroidStringsDocument(path).upsert("b", "Bonjour <b>Monde</b>")

        self.assertIn('<string name="b">Bonjour <b>Monde</b></string>', self.read(path))

    def test_markup_with_ampersand_is_written_as_markup(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)
        document = AndroidStringsDocument(path)

        document.upsert("b", "Termes & <b>Conditions</b> < 3")

        self.assertIn(
            '<string name="b">Termes &amp; <b>Conditions</b> &lt; 3</string>', self.read(path)
        )
        values = dict((e.name, e.value) for e in document.read_entries())
        self.assertEqual(values["b"], "Termes & <b>Conditions</b> < 3")

    def test_read_value_round_trips_through_upsert(self):
        source = self.create_strings_xml(
            "values",
            '<resources xmlns:xliff="urn:oasis:names:tc:xliff:document:1.2">\n'
            '    <string name="count">Count: <xliff:g id="n">%d</xliff:g> &amp; more</string>\n'
            "</resources>\n",
        )
        target = self.create_strings_xml(
            "values-fr",
            '<resources xmlns:xliff="urn:oasis:names:tc:xliff:document:1.2">\n'
            "</resources>\n",
        )
        value = AndroidStringsDocument(source).read_entries()[0].value

        AndroidStringsDocument(target).upsert("count", value)

        self.assertIn(
            '<string name="count">Count: <xliff:g id="n">%d</xliff:g> &amp; more</string>',
            self.read(target),
        )
        self.assertEqual(AndroidStringsDocument(target).read_entries()[0].value, value)

    def test_write_failure_leaves_file_untouched(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)

        with patch("resource_document.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(DocumentWriteError) as ctx:
                AndroidStringsDocument(path).upsert("b", "Monde")

        self.assertIn("disk full", str(ctx.exception))
        self.assertEqual(self.read(path), self.ORIGINAL)
        self.assertEqual(os.listdir(os.path.dirname(path)), ["strings.xml"])

    def test_exception_inside_edit_does_not_write(self):
        path = self.create_strings_xml("values-fr", self.ORIGINAL)

        with self.assertRaises(RuntimeError):
            with AndroidStringsDocument(path).edit() as root:
                root.clear()
                raise RuntimeError("abort")

        self.assertEqual(self.read(path), self.ORIGINAL)

    def test_missing_file(self):
        missing = Path(self.temp_dir) / "values-de" / "strings.xml"
        with self.assertRaises(DocumentWriteError):
            AndroidStringsDocument(missing).upsert("a", "Hallo")


if __name__ == "__main__":
    unittest.main()
