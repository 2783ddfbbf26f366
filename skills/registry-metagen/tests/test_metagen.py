import ast
import os
import sys
import tempfile
import unittest
from pathlib import Path
from typing import List, Optional

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from metagen import (
    ConfigError,
    ConflictError,
    DuplicateIdError,
    MetadataRecord,
    ScanOptions,
    SnapshotError,
    ToolState,
    absolute_import_name,
    check_conflicts,
    dump_snapshot,
    find_constructor,
    find_metadata,
    find_registration_sites,
    is_irrelevant_path,
    iter_preorder,
    list_repo_files_fallback,
    load_repo_config,
    load_snapshot,
    load_source_set,
    module_name_for_path,
    qualified_name,
    resolve_string,
    run_scan,
    save_snapshot,
    scan_source_set,
)
from metagen.discovery import run_lister


REGISTRY_SOURCE = '''
from dataclasses import dataclass
from enum import Enum


class AdapterType(str, Enum):
    MUSIC = "music"
    VIDEO = "video"


@dataclass
class Metadata:
    id: str
    title: str = ""
    type: str = ""
    version: str = ""
    author: str = ""
    description: str = ""


_registry = {}


def register(adapter):
    _registry[adapter.metadata.id] = adapter
'''

NETEASE_SOURCE = '''
from meloshub import adapter
from meloshub.adapter import AdapterType
from plugins import versions

ADAPTER_ID = "netease"


class NeteaseAdapter:
    def __init__(self, metadata):
        self.metadata = metadata


def new_adapter():
    return NeteaseAdapter(adapter.Metadata(
        id=ADAPTER_ID,
        title="NetEase Cloud Music",
        type=AdapterType.MUSIC,
        version=versions.V1,
        author="melos",
        description="Search and stream from NetEase",
    ))


adapter.register(new_adapter())
'''

VERSIONS_SOURCE = '''
V1 = "v1"
PREFIX = "melos"
FULL = PREFIX + "-" + V1
COMPUTED = str(1)
'''


def write_file(root: Path, rel_path: str, content: str) -> None:
    full_path = root / rel_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")


def write_registry(root: Path) -> None:
    write_file(root, "meloshub/__init__.py", "")
    write_file(root, "meloshub/adapter.py", REGISTRY_SOURCE)
    write_file(root, "plugins/__init__.py", "")
    write_file(root, "plugins/versions.py", VERSIONS_SOURCE)


def plugin(adapter_id: str, *, title: str = "", author: str = "melos") -> str:
    return (
        "from meloshub import adapter\n\n\n"
        "def new_adapter():\n"
        f"    return adapter.Metadata(id={adapter_id!r}, title={title!r}, author={author!r})\n\n\n"
        "adapter.register(new_adapter())\n"
    )


def load(repo: Path, warnings: Optional[List[str]] = None):
    return load_source_set(
        repo,
        roots=("src", "."),
        warnings=warnings if warnings is not None else [],
        files=list_repo_files_fallback(repo),
    )


def keyword_value(unit, name: str) -> ast.expr:
    for node in iter_preorder(unit.tree.body):
        if isinstance(node, ast.keyword) and node.arg == name:
            return node.value
    raise AssertionError(f"keyword {name} not found")


def scan_records(repo: Path, options: Optional[ScanOptions] = None):
    source_set = load(repo)
    return scan_source_set(source_set, options or ScanOptions())


class TestImports(unittest.TestCase):
    def test_module_name_for_path(self):
        self.assertEqual(module_name_for_path("plugins/netease.py", ("src", ".")), ("plugins.netease", False))
        self.assertEqual(module_name_for_path("src/pkg/__init__.py", ("src", ".")), ("pkg", True))
        self.assertEqual(module_name_for_path("src/pkg/mod.py", (".",)), ("src.pkg.mod", False))

    def test_absolute_import_name(self):
        self.assertEqual(absolute_import_name("versions", 1, "plugins"), "plugins.versions")
        self.assertEqual(absolute_import_name(None, 1, "plugins.music"), "plugins.music")
        self.assertEqual(absolute_import_name("common", 2, "plugins.music"), "plugins.common")
        self.assertEqual(absolute_import_name("meloshub", 0, "plugins"), "meloshub")
        self.assertIsNone(absolute_import_name("x", 3, "plugins"))

    def test_irrelevant_paths(self):
        globs = ScanOptions().exclude_globs
        self.assertTrue(is_irrelevant_path("tools/gen.py", exclude_globs=globs, include_tests=False))
        self.assertTrue(is_irrelevant_path("cmd/tools/gen.py", exclude_globs=globs, include_tests=False))
        self.assertTrue(is_irrelevant_path("tests/test_x.py", exclude_globs=globs, include_tests=False))
        self.assertFalse(is_irrelevant_path("tests/test_x.py", exclude_globs=globs, include_tests=True))
        self.assertFalse(is_irrelevant_path("plugins/netease.py", exclude_globs=globs, include_tests=False))


class TestResolver(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = Path(self._tmp.name)
        write_registry(self.repo)
        write_file(self.repo, "plugins/__init__.py", "from .versions import V1\n")
        write_file(
            self.repo,
            "plugins/sample.py",
            '''
import plugins
from meloshub.adapter import AdapterType
from plugins import versions
from plugins.versions import V1 as VER

LOCAL = "v1"
TWICE = "a"
TWICE = "b"


def build(arg):
    local_version = "v2"
    return describe(
        direct=LOCAL,
        qualified=versions.V1,
        imported=VER,
        reexported=plugins.V1,
        folded=versions.FULL,
        computed=versions.COMPUTED,
        inline_concat="a" + "b",
        fstring=f"{LOCAL}",
        rebound=TWICE,
        number=3,
        param=arg,
        local=local_version,
        enum=AdapterType.MUSIC,
        unknown=undefined_name,
    )
''',
        )
        self.source_set = load(self.repo)
        self.unit = self.source_set.unit_for_module("plugins.sample")

    def tearDown(self):
        self._tmp.cleanup()

    def resolve(self, name: str) -> str:
        return resolve_string(keyword_value(self.unit, name), self.unit, self.source_set)

    def test_direct_and_cross_module_constants(self):
        self.assertEqual(self.resolve("direct"), "v1")
        self.assertEqual(self.resolve("qualified"), "v1")
        self.assertEqual(self.resolve("imported"), "v1")
        self.assertEqual(self.resolve("reexported"), "v1")

    def test_constant_definitions_fold_concatenation(self):
        self.assertEqual(self.resolve("folded"), "melos-v1")

    def test_local_constant_and_enum_member(self):
        self.assertEqual(self.resolve("local"), "v2")
        self.assertEqual(self.resolve("enum"), "music")

    def test_non_constants_resolve_to_empty(self):
        for name in ("computed", "inline_concat", "fstring", "rebound", "number", "param", "unknown"):
            with self.subTest(name=name):
                self.assertEqual(self.resolve(name), "")


class TestLocator(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = Path(self._tmp.name)
        write_registry(self.repo)

    def tearDown(self):
        self._tmp.cleanup()

    def sites(self, source: str, warnings: Optional[List[str]] = None):
        write_file(self.repo, "plugins/candidate.py", source)
        source_set = load(self.repo)
        unit = source_set.unit_for_module("plugins.candidate")
        return find_registration_sites(unit, source_set, ScanOptions(), warnings if warnings is not None else [])

    def test_renamed_import_matches_by_resolved_symbol(self):
        sites = self.sites(
            "from meloshub.adapter import register as add\n"
            "def new_adapter():\n    pass\n"
            "add(new_adapter())\n"
        )
        self.assertEqual(len(sites), 1)
        self.assertIsInstance(sites[0].argument, ast.Call)

    def test_module_alias_matches(self):
        sites = self.sites(
            "import meloshub.adapter as registry\n"
            "def new_adapter():\n    pass\n"
            "registry.register(new_adapter())\n"
        )
        self.assertEqual(len(sites), 1)

    def test_local_register_shadows_registry(self):
        sites = self.sites(
            "def register(item):\n    return item\n"
            "def new_adapter():\n    pass\n"
            "register(new_adapter())\n"
        )
        self.assertEqual(sites, [])

    def test_call_inside_regular_function_is_not_an_initializer(self):
        sites = self.sites(
            "from meloshub import adapter\n"
            "def later():\n    adapter.register(object())\n"
        )
        self.assertEqual(sites, [])

    def test_init_function_is_an_entry_point(self):
        sites = self.sites(
            "from meloshub import adapter\n"
            "def new_adapter():\n    pass\n"
            "def init():\n    adapter.register(new_adapter())\n"
        )
        self.assertEqual([site.entry for site in sites], ["init"])

    def test_init_without_registration_is_reported(self):
        warnings: List[str] = []
        sites = self.sites("def init():\n    print('loaded')\n", warnings)
        self.assertEqual(sites, [])
        self.assertEqual(len(warnings), 1)
        self.assertIn("initializer init()", warnings[0])

    def test_call_in_lambda_keyword_default_runs_at_load(self):
        sites = self.sites(
            "from meloshub import adapter\n"
            "def new_adapter():\n    pass\n"
            "hook = lambda *, item=adapter.register(new_adapter()): item\n"
        )
        self.assertEqual(len(sites), 1)
        self.assertEqual(sites[0].argument.func.id, "new_adapter")

    def test_only_first_call_per_initializer(self):
        sites = self.sites(
            "from meloshub import adapter\n"
            "def first():\n    pass\n"
            "def second():\n    pass\n"
            "adapter.register(first())\n"
            "adapter.register(second())\n"
        )
        self.assertEqual(len(sites), 1)
        self.assertEqual(sites[0].argument.func.id, "first")


class TestTracer(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = Path(self._tmp.name)
        write_registry(self.repo)

    def tearDown(self):
        self._tmp.cleanup()

    def trace(self, source: str, warnings: Optional[List[str]] = None):
        write_file(self.repo, "plugins/candidate.py", source)
        source_set = load(self.repo)
        unit = source_set.unit_for_module("plugins.candidate")
        warnings = warnings if warnings is not None else []
        sites = find_registration_sites(unit, source_set, ScanOptions(), warnings)
        self.assertEqual(len(sites), 1)
        return find_constructor(sites[0], warnings)

    def test_direct_call_shape(self):
        constructor = self.trace(
            "from meloshub import adapter\n"
            "def new_foo():\n    pass\n"
            "adapter.register(new_foo())\n"
        )
        self.assertIsNotNone(constructor)
        self.assertEqual(constructor.name, "new_foo")

    def test_indirect_variable_shape(self):
        constructor = self.trace(
            "from meloshub import adapter\n"
            "def new_foo():\n    pass\n"
            "c = new_foo()\n"
            "adapter.register(c)\n"
        )
        self.assertIsNotNone(constructor)
        self.assertEqual(constructor.name, "new_foo")

    def test_indirect_shape_inside_init(self):
        constructor = self.trace(
            "from meloshub import adapter\n"
            "def new_foo():\n    pass\n"
            "def init():\n    c: object = new_foo()\n    adapter.register(c)\n"
        )
        self.assertIsNotNone(constructor)
        self.assertEqual(constructor.name, "new_foo")

    def test_indirect_shape_compares_symbols_not_spelling(self):
        constructor = self.trace(
            "from meloshub import adapter\n"
            "def new_foo():\n    pass\n"
            "def new_bar():\n    pass\n"
            "def setup():\n    c = new_bar()\n    return c\n"
            "c = new_foo()\n"
            "adapter.register(c)\n"
        )
        self.assertIsNotNone(constructor)
        self.assertEqual(constructor.name, "new_foo")

    def test_literal_argument_is_untraceable(self):
        self.assertIsNone(self.trace("from meloshub import adapter\nadapter.register(42)\n"))

    def test_imported_constructor_is_untraceable(self):
        warnings: List[str] = []
        write_file(self.repo, "plugins/factory.py", "def new_foo():\n    pass\n")
        constructor = self.trace(
            "from meloshub import adapter\n"
            "from plugins.factory import new_foo\n"
            "adapter.register(new_foo())\n",
            warnings,
        )
        self.assertIsNone(constructor)
        self.assertEqual(len(warnings), 1)
        self.assertIn("imported", warnings[0])

    def test_literal_argument_reports_once(self):
        warnings: List[str] = []
        self.assertIsNone(self.trace("from meloshub import adapter\nadapter.register(42)\n", warnings))
        self.assertEqual(len(warnings), 1)
        self.assertIn("could not trace its constructor", warnings[0])

    def test_class_constructor_is_traced(self):
        constructor = self.trace(
            "from meloshub import adapter\n"
            "class MusicAdapter:\n"
            "    metadata = adapter.Metadata(id='music-class')\n"
            "adapter.register(MusicAdapter())\n"
        )
        self.assertIsNotNone(constructor)
        self.assertIsInstance(constructor.declaration, ast.ClassDef)


class TestExtractor(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = Path(self._tmp.name)
        write_registry(self.repo)

    def tearDown(self):
        self._tmp.cleanup()

    def extract(self, source: str, function: str = "new_adapter") -> Optional[MetadataRecord]:
        write_file(self.repo, "plugins/candidate.py", source)
        source_set = load(self.repo)
        unit = source_set.unit_for_module("plugins.candidate")
        declaration = next(
            node for node in unit.tree.body if isinstance(node, ast.FunctionDef) and node.name == function
        )
        return find_metadata(declaration.body, unit, source_set, ScanOptions().metadata_qualname)

    def test_first_valid_match_wins(self):
        record = self.extract(
            "from meloshub import adapter\n"
            "def new_adapter():\n"
            "    draft = adapter.Metadata(title='draft')\n"
            "    final = adapter.Metadata(id='second', title='final')\n"
            "    other = adapter.Metadata(id='third')\n"
            "    return final\n"
        )
        self.assertEqual(record, MetadataRecord(id="second", title="final"))

    def test_same_named_unrelated_type_is_ignored(self):
        record = self.extract(
            "from meloshub import adapter\n"
            "class Metadata:\n"
            "    def __init__(self, **kwargs):\n"
            "        self.kwargs = kwargs\n"
            "def new_adapter():\n"
            "    local = Metadata(id='wrong')\n"
            "    return adapter.Metadata(id='right')\n"
        )
        self.assertEqual(record.id, "right")

    def test_aliased_type_and_unknown_fields(self):
        record = self.extract(
            "from meloshub.adapter import Metadata as Meta\n"
            "Record = Meta\n"
            "def new_adapter():\n"
            "    return Record(id='aliased', kind='video', homepage='https://x', **{'author': 'x'})\n"
        )
        self.assertEqual(record, MetadataRecord(id="aliased", type="video"))

    def test_no_valid_literal(self):
        record = self.extract(
            "from meloshub import adapter\n"
            "def new_adapter():\n"
            "    return adapter.Metadata(id=make_id())\n"
        )
        self.assertIsNone(record)

    def test_qualified_name_of_metadata_call(self):
        write_file(self.repo, "plugins/candidate.py", "from meloshub import adapter\nadapter.Metadata(id='x')\n")
        source_set = load(self.repo)
        unit = source_set.unit_for_module("plugins.candidate")
        call = unit.tree.body[1].value
        self.assertEqual(qualified_name(call.func, unit, source_set), "meloshub.adapter.Metadata")


class TestScan(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = Path(self._tmp.name)
        write_registry(self.repo)

    def tearDown(self):
        self._tmp.cleanup()

    def test_full_record_is_extracted(self):
        write_file(self.repo, "plugins/netease.py", NETEASE_SOURCE)
        result = scan_records(self.repo)
        self.assertEqual(
            result.records,
            [
                MetadataRecord(
                    id="netease",
                    title="NetEase Cloud Music",
                    type="music",
                    version="v1",
                    author="melos",
                    description="Search and stream from NetEase",
                )
            ],
        )

    def test_untraceable_unit_does_not_stop_the_scan(self):
        write_file(self.repo, "plugins/netease.py", NETEASE_SOURCE)
        write_file(self.repo, "plugins/broken.py", "from meloshub import adapter\nadapter.register(42)\n")
        result = scan_records(self.repo)
        self.assertEqual([record.id for record in result.records], ["netease"])
        traced = [w for w in result.warnings if "broken.py" in w]
        self.assertEqual(len(traced), 1)
        self.assertIn("could not trace its constructor", traced[0])

    def test_irrelevant_units_are_skipped(self):
        write_file(self.repo, "tools/gen.py", plugin("tooling"))
        write_file(self.repo, "tests/test_plugin.py", plugin("test-only"))
        write_file(self.repo, "plugins/ok.py", plugin("ok"))
        write_file(self.repo, "plugins/bad_syntax.py", "def broken(:\n")
        warnings: List[str] = []
        source_set = load(self.repo, warnings)
        result = scan_source_set(source_set, ScanOptions())
        self.assertEqual([record.id for record in result.records], ["ok"])
        self.assertIn("plugins/bad_syntax.py", source_set.failed)
        self.assertTrue(any("bad_syntax.py" in w for w in warnings))

    def test_src_layout(self):
        write_file(self.repo, "src/plugins/video.py", plugin("video"))
        result = scan_records(self.repo)
        self.assertEqual([record.id for record in result.records], ["video"])

    def test_custom_registry_configuration(self):
        write_file(self.repo, "hub/registry.py", "class Info:\n    pass\ndef add(x):\n    pass\n")
        write_file(
            self.repo,
            "plugins/custom.py",
            "from hub.registry import Info, add\n"
            "def make():\n    return Info(id='custom')\n"
            "add(make())\n",
        )
        options = ScanOptions(registry_module="hub.registry", register_function="add", metadata_type="Info")
        result = scan_records(self.repo, options)
        self.assertEqual([record.id for record in result.records], ["custom"])

    def test_scan_is_idempotent_and_sorted(self):
        write_file(self.repo, "plugins/zeta.py", plugin("zeta", title="Z"))
        write_file(self.repo, "plugins/alpha.py", plugin("alpha", title="A"))
        output = self.repo / "adapters.yaml"
        run_scan(self.repo, ScanOptions(), output)
        first = output.read_bytes()
        run_scan(self.repo, ScanOptions(), output)
        self.assertEqual(first, output.read_bytes())
        self.assertEqual([record.id for record in load_snapshot(output)], ["alpha", "zeta"])
        self.assertTrue(first.decode("utf-8").startswith("- Id: alpha\n  Title: A\n"))

    def test_duplicate_ids_abort_without_output(self):
        write_file(self.repo, "plugins/one.py", plugin("dup"))
        write_file(self.repo, "plugins/two.py", plugin("dup"))
        output = self.repo / "adapters.yaml"
        with self.assertRaises(DuplicateIdError) as ctx:
            run_scan(self.repo, ScanOptions(), output)
        self.assertEqual(ctx.exception.adapter_id, "dup")
        self.assertFalse(output.exists())


class TestConflicts(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.path = self.root / "adapters.yaml"

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_snapshot_is_first_run(self):
        warnings: List[str] = []
        check_conflicts([MetadataRecord(id="a")], self.path, warnings=warnings)
        self.assertEqual(warnings, [])

    def test_duplicate_in_scan_is_fatal(self):
        with self.assertRaises(DuplicateIdError):
            check_conflicts([MetadataRecord(id="a"), MetadataRecord(id="a")], self.path, warnings=[])

    def test_malformed_snapshot_is_fatal(self):
        self.path.write_text("- Id: [unterminated\n", encoding="utf-8")
        with self.assertRaises(SnapshotError):
            check_conflicts([MetadataRecord(id="a")], self.path, warnings=[])
        self.path.write_text("Id: not-a-list\n", encoding="utf-8")
        with self.assertRaises(SnapshotError):
            check_conflicts([MetadataRecord(id="a")], self.path, warnings=[])

    def test_published_id_claimed_by_another_author(self):
        save_snapshot(self.path, [MetadataRecord(id="a", author="alice"), MetadataRecord(id="b", author="bob")])
        records = [MetadataRecord(id="a", author="mallory"), MetadataRecord(id="b", author="bob")]

        warnings: List[str] = []
        check_conflicts(records, self.path, policy="warn", warnings=warnings)
        self.assertEqual(len(warnings), 1)
        self.assertIn("'a'", warnings[0])

        with self.assertRaises(ConflictError):
            check_conflicts(records, self.path, policy="error", warnings=[])

        warnings = []
        check_conflicts(records, self.path, policy="ignore", warnings=warnings)
        self.assertEqual(warnings, [])

    def test_unknown_policy(self):
        with self.assertRaises(ConfigError):
            check_conflicts([], self.path, policy="panic", warnings=[])


class TestSnapshotsAndConfig(unittest.TestCase):
    def test_snapshot_keys(self):
        text = dump_snapshot([MetadataRecord(id="a", title="A", type="music")])
        self.assertEqual(
            text,
            "- Id: a\n  Title: A\n  Type: music\n  Version: ''\n  Author: ''\n  Description: ''\n",
        )

    def test_lowercase_keys_are_accepted(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "old.yaml"
            path.write_text("- id: a\n  title: A\n  version: 1.2\n", encoding="utf-8")
            self.assertEqual(load_snapshot(path), [MetadataRecord(id="a", title="A", version="1.2")])

    def test_repo_config(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir)
            write_file(
                repo,
                ".metagen.json",
                '{"registry_module": "hub.registry", "init_functions": ["setup"], '
                '"include_tests": true, "existing_id_policy": "nope"}',
            )
            warnings: List[str] = []
            config, name = load_repo_config(repo, warnings)
            self.assertEqual(name, ".metagen.json")
            self.assertEqual(config["registry_module"], "hub.registry")
            self.assertEqual(config["init_functions"], ["setup"])
            self.assertTrue(config["include_tests"])
            self.assertNotIn("existing_id_policy", config)
            self.assertEqual(len(warnings), 1)

    def test_malformed_repo_config_warns(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir)
            write_file(repo, "metagen.json", "{not json")
            warnings: List[str] = []
            config, name = load_repo_config(repo, warnings)
            self.assertEqual(config, {})
            self.assertEqual(name, "metagen.json")
            self.assertEqual(len(warnings), 1)


PACKAGE_INIT_SOURCE = '''
from .models import AdapterType, Metadata
from .registry import register
'''

MODELS_SOURCE = '''
from dataclasses import dataclass
from enum import Enum


class AdapterType(str, Enum):
    MUSIC = "music"


@dataclass
class Metadata:
    id: str
    title: str = ""
    type: str = ""
'''

QQ_SOURCE = '''
from meloshub import adapter
from meloshub.adapter import AdapterType


def new_adapter():
    return adapter.Metadata(id="qq", title="QQ Music", type=AdapterType.MUSIC)


adapter.register(new_adapter())
'''


def write_packaged_registry(root: Path) -> None:
    write_file(root, "meloshub/__init__.py", "")
    write_file(root, "meloshub/adapter/__init__.py", PACKAGE_INIT_SOURCE)
    write_file(root, "meloshub/adapter/models.py", MODELS_SOURCE)
    write_file(root, "meloshub/adapter/registry.py", "def register(adapter):\n    return adapter\n")


class TestRegistryLocations(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = Path(self._tmp.name) / "repo"
        self.site = Path(self._tmp.name) / "site-packages"
        write_file(self.repo, "plugins/qq.py", QQ_SOURCE)

    def tearDown(self):
        self._tmp.cleanup()

    def scan(self, search_paths=()):
        warnings: List[str] = []
        source_set = load_source_set(
            self.repo,
            roots=("src", "."),
            warnings=warnings,
            files=list_repo_files_fallback(self.repo),
            search_paths=search_paths,
        )
        return source_set, scan_source_set(source_set, ScanOptions())

    def test_registry_package_reexporting_from_submodules(self):
        write_packaged_registry(self.repo)
        _, result = self.scan()
        self.assertEqual(result.records, [MetadataRecord(id="qq", title="QQ Music", type="music")])
        self.assertEqual(result.warnings, [])

    def test_registry_found_on_search_path(self):
        write_packaged_registry(self.site)
        source_set, result = self.scan(search_paths=[str(self.site)])
        self.assertEqual(result.records, [MetadataRecord(id="qq", title="QQ Music", type="music")])
        self.assertEqual([unit.path for unit in source_set.units], ["plugins/qq.py"])
        self.assertEqual(result.units_scanned, 1)

    def test_registry_module_file_on_search_path(self):
        write_file(self.site, "meloshub/adapter.py", REGISTRY_SOURCE)
        _, result = self.scan(search_paths=[str(self.site)])
        self.assertEqual([record.type for record in result.records], ["music"])

    def test_without_search_path_constants_stay_unresolved(self):
        write_packaged_registry(self.site)
        _, result = self.scan()
        self.assertEqual(result.records, [MetadataRecord(id="qq", title="QQ Music")])

    def test_unparsable_module_on_search_path_is_reported(self):
        write_packaged_registry(self.site)
        write_file(self.site, "meloshub/adapter/__init__.py", "from .models import (\n")
        _, result = self.scan(search_paths=[str(self.site)])
        self.assertEqual([record.id for record in result.records], ["qq"])
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("could not load meloshub.adapter", result.warnings[0])

    def test_run_scan_uses_configured_search_paths(self):
        write_packaged_registry(self.site)
        output = self.repo / "adapters.yaml"
        run_scan(self.repo, ScanOptions(search_paths=(str(self.site),)), output)
        self.assertEqual(load_snapshot(output), [MetadataRecord(id="qq", title="QQ Music", type="music")])


class TestDiscovery(unittest.TestCase):
    def test_missing_lister_is_remembered(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            tools = ToolState()
            warnings: List[str] = []
            cmd = ["metagen-no-such-lister", "--files"]
            self.assertIsNone(run_lister(cmd, Path(temp_dir), warnings, tools))
            self.assertIn("metagen-no-such-lister", tools.missing)
            self.assertIsNone(run_lister(cmd, Path(temp_dir), warnings, tools))
            self.assertEqual(warnings, [])

    def test_fallback_walk_lists_python_sources(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir)
            write_file(repo, "plugins/qq.py", "")
            write_file(repo, "plugins/README.md", "")
            write_file(repo, "app.py", "")
            write_file(repo, ".venv/lib/site.py", "")
            write_file(repo, "build/lib/plugins/qq.py", "")
            write_file(repo, "metagen.egg-info/setup.py", "")
            self.assertEqual(list_repo_files_fallback(repo), ["app.py", "plugins/qq.py"])


if __name__ == "__main__":
    unittest.main()
