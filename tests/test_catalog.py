import asyncio

from dremops.core.catalog import CatalogTreeCache, replace_node
from dremops.core.nodes import CatalogNode, LoadState, NodeKind, fields_from_api
from dremops.core.result import Err, ErrorKind, Ok, RemoteError

TOP = [
    {"id": "src", "path": ["Samples"], "type": "CONTAINER", "containerType": "SOURCE"},
    {"id": "spc", "path": ["Sales"], "type": "CONTAINER", "containerType": "SPACE"},
]

ENTITIES = {
    "src": {
        "id": "src",
        "children": [
            {"id": "fld", "path": ["Samples", "nyc"], "type": "CONTAINER", "containerType": "FOLDER"},
            {"id": "dot", "path": ["Samples", "a.b"], "type": "DATASET", "datasetType": "VIRTUAL"},
        ],
    },
    "fld": {
        "id": "fld",
        "children": [
            {"id": "trips", "path": ["Samples", "nyc", "trips"], "type": "DATASET", "datasetType": "PROMOTED"},
        ],
    },
    "spc": {"id": "spc", "children": []},
    "trips": {
        "id": "trips",
        "fields": [
            {"name": "fare", "type": {"name": "DECIMAL", "precision": 10, "scale": 2}},
            {"name": "city", "type": {"name": "VARCHAR"}},
        ],
    },
}


class _Adapter:
    def __init__(self, top=TOP, entities=ENTITIES, failing=()):
        self.top = top
        self.entities = entities
        self.failing = set(failing)
        self.calls: list[str] = []

    async def list_top(self):
        self.calls.append("list_top")
        if "list_top" in self.failing:
            return Err(RemoteError(kind=ErrorKind.TRANSPORT, message="down"))
        return Ok(list(self.top))

    async def get_by_id(self, node_id: str):
        self.calls.append(node_id)
        await asyncio.sleep(0)
        if node_id in self.failing:
            return Err(RemoteError(kind=ErrorKind.PROTOCOL, message="boom", status_code=500))
        return Ok(self.entities[node_id])


def _loaded_tree(adapter=None) -> CatalogTreeCache:
    tree = CatalogTreeCache(adapter or _Adapter())
    asyncio.run(tree.list_top())
    return tree


def test_list_top_builds_unloaded_container_roots():
    tree = _loaded_tree()

    assert [r.full_path for r in tree.roots] == ["Samples", "Sales"]
    assert all(r.kind == NodeKind.CONTAINER for r in tree.roots)
    assert tree.roots[0].container_kind == "SOURCE"
    assert all(r.load_state == LoadState.NOT_LOADED for r in tree.roots)
    assert tree.top_loaded is True


def test_list_top_failure_keeps_previous_roots():
    adapter = _Adapter()
    tree = _loaded_tree(adapter)
    before = tree.roots

    adapter.failing.add("list_top")
    result = asyncio.run(tree.list_top())

    assert isinstance(result, Err)
    assert tree.roots is before


def test_expand_is_idempotent():
    adapter = _Adapter()
    tree = _loaded_tree(adapter)
    src = tree.find("src")

    async def _run():
        first = await tree.expand(src)
        second = await tree.expand(tree.find("src"))
        return first, second

    first, second = asyncio.run(_run())

    assert adapter.calls.count("src") == 1
    assert [c.id for c in first.value] == ["fld", "dot"]
    assert second.value == first.value
    assert tree.find("src").load_state == LoadState.LOADED


def test_concurrent_expand_issues_one_fetch():
    adapter = _Adapter()
    tree = _loaded_tree(adapter)
    src = tree.find("src")

    async def _run():
        return await asyncio.gather(tree.expand(src), tree.expand(src))

    results = asyncio.run(_run())

    assert adapter.calls.count("src") == 1
    assert all(isinstance(r, Ok) for r in results)
    assert [c.id for c in tree.find("src").children] == ["fld", "dot"]


def test_expand_keeps_loaded_descendants_and_untouched_branches():
    tree = _loaded_tree()

    async def _run():
        await tree.expand(tree.find("src"))
        await tree.expand(tree.find("fld"))
        untouched = tree.find("fld")
        await tree.expand(tree.find("spc"))
        return untouched

    untouched = asyncio.run(_run())

    samples = tree.find_by_path("Samples")
    assert samples.load_state == LoadState.LOADED
    assert samples.children[0] is untouched
    assert [c.id for c in tree.find("fld").children] == ["trips"]
    assert tree.find("spc").children == ()


def test_expand_failure_marks_node_loaded_and_empty():
    tree = _loaded_tree(_Adapter(failing={"src"}))

    result = asyncio.run(tree.expand(tree.find("src")))

    assert isinstance(result, Err)
    assert result.error.status_code == 500
    node = tree.find("src")
    assert node.load_state == LoadState.LOADED
    assert node.children == ()


def test_expand_of_node_missing_from_tree_leaves_tree_unchanged():
    tree = _loaded_tree()
    before = tree.roots
    stray = CatalogNode(id="fld", path=("Samples", "nyc"), kind=NodeKind.CONTAINER)

    asyncio.run(tree.expand(stray))

    assert tree.roots is before
    assert tree.find("fld") is None


def test_expand_dataset_loads_fields_instead_of_children():
    tree = _loaded_tree()

    async def _run():
        await tree.expand(tree.find("src"))
        await tree.expand(tree.find("fld"))
        return await tree.expand(tree.find("trips"))

    result = asyncio.run(_run())

    assert result == Ok(())
    trips = tree.find("trips")
    assert trips.load_state == LoadState.LOADED
    assert [f.type_display for f in trips.fields] == ["DECIMAL(10,2)", "VARCHAR"]


def test_load_fields_is_cached():
    adapter = _Adapter()
    tree = _loaded_tree(adapter)

    async def _run():
        await tree.expand(tree.find("src"))
        await tree.expand(tree.find("fld"))
        first = await tree.load_fields(tree.find("trips"))
        second = await tree.load_fields(tree.find("trips"))
        return first, second

    first, second = asyncio.run(_run())

    assert adapter.calls.count("trips") == 1
    assert first == second
    assert [f.name for f in first] == ["fare", "city"]


def test_load_fields_failure_returns_empty_fields():
    adapter = _Adapter(failing={"trips"})
    tree = _loaded_tree(adapter)

    async def _run():
        await tree.expand(tree.find("src"))
        await tree.expand(tree.find("fld"))
        return await tree.load_fields(tree.find("trips"))

    assert asyncio.run(_run()) == ()
    assert tree.find("trips").load_state == LoadState.LOADED


def test_resolve_children_error_does_not_touch_tree():
    tree = _loaded_tree(_Adapter(failing={"src"}))
    before = tree.roots

    result = asyncio.run(tree.resolve_children(tree.find("src")))

    assert isinstance(result, Err)
    assert tree.roots is before
    assert tree.find("src").load_state == LoadState.NOT_LOADED


def test_resolve_children_merges_and_then_uses_cache():
    adapter = _Adapter()
    tree = _loaded_tree(adapter)

    async def _run():
        first = await tree.resolve_children(tree.find("src"))
        second = await tree.resolve_children(tree.find("src"))
        return first, second

    first, second = asyncio.run(_run())

    assert adapter.calls.count("src") == 1
    assert first.value == second.value
    assert tree.find("src").load_state == LoadState.LOADED


def test_locate_expands_ancestors_and_handles_dotted_names():
    adapter = _Adapter()
    tree = CatalogTreeCache(adapter)

    async def _run():
        trips = await tree.locate("Samples.nyc.trips")
        dotted = await tree.locate("Samples.a.b")
        missing = await tree.locate("Samples.nope")
        return trips, dotted, missing

    trips, dotted, missing = asyncio.run(_run())

    assert trips.value.id == "trips"
    assert dotted.value.id == "dot"
    assert missing == Ok(None)
    assert adapter.calls.count("list_top") == 1


def test_replace_node_reports_unchanged_when_id_is_absent():
    roots = (CatalogNode(id="a", path=("a",), kind=NodeKind.CONTAINER),)

    new_roots, changed = replace_node(roots, "zzz", lambda n: n)

    assert changed is False
    assert new_roots is roots


def test_resolve_children_refetches_after_failed_expand():
    adapter = _Adapter(failing={"src"})
    tree = _loaded_tree(adapter)

    async def _run():
        await tree.expand(tree.find("src"))
        adapter.failing.clear()
        first = await tree.resolve_children(tree.find("src"))
        second = await tree.resolve_children(tree.find("src"))
        return first, second

    first, second = asyncio.run(_run())

    assert [c.id for c in first.value] == ["fld", "dot"]
    assert second.value == first.value
    assert adapter.calls.count("src") == 2
    assert [c.id for c in tree.find("src").children] == ["fld", "dot"]


def test_malformed_children_entries_are_skipped():
    entities = {
        "src": {"children": ["oops", None, {"path": ["Samples", "no_id"]}, ENTITIES["src"]["children"][1]]},
        "spc": {"children": {"id": "not-a-list"}},
    }
    tree = _loaded_tree(_Adapter(entities=entities))

    async def _run():
        return await tree.expand(tree.find("src")), await tree.expand(tree.find("spc"))

    src, spc = asyncio.run(_run())

    assert [c.id for c in src.value] == ["dot"]
    assert spc == Ok(())
    assert tree.find("spc").load_state == LoadState.LOADED


def test_fields_from_api_skips_malformed_entries():
    fields = fields_from_api(
        [
            "junk",
            {"name": "id", "type": "BIGINT"},
            {"type": {"name": "INT"}},
            {"name": "amount", "type": {"name": "DECIMAL", "precision": 12, "scale": 2}},
        ]
    )

    assert [(f.name, f.type_display) for f in fields] == [("id", ""), ("amount", "DECIMAL(12,2)")]
    assert fields_from_api({"name": "id"}) == ()
