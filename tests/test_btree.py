import pytest

from treealoc.btree import MAX_KEYS, Block, BNode, BTree


def _build(addresses, size=10):
    tree = BTree()
    for address in addresses:
        tree.insert(size, address)
    return tree


def _leaf_depths(node, depth=0):
    if node.leaf:
        return {depth}
    depths = set()
    for child in node.children:
        depths |= _leaf_depths(child, depth + 1)
    return depths


def _check_node_shape(node, is_root=True):
    assert 1 <= len(node.keys) <= MAX_KEYS
    addresses = [b.address for b in node.keys]
    assert addresses == sorted(addresses)
    if not node.leaf:
        assert len(node.children) == len(node.keys) + 1
        for child in node.children:
            _check_node_shape(child, is_root=False)


def test_inorder_is_sorted_by_address():
    addresses = [0x500, 0x100, 0x900, 0x300, 0x700, 0x200, 0x800, 0x400, 0x600]
    tree = _build(addresses)
    assert [b.address for b in tree] == sorted(addresses)
    assert len(tree) == len(addresses)


def test_tree_stays_balanced():
    addresses = [(i * 7919) % 1000 * 16 for i in range(1, 60)]
    tree = _build(addresses)
    assert len(_leaf_depths(tree.root)) == 1
    _check_node_shape(tree.root)
    assert list(b.address for b in tree.blocks()) == sorted(addresses)


def test_split_of_full_root_promotes_median():
    tree = _build([1, 2, 3, 4])
    assert not tree.root.leaf
    assert [b.address for b in tree.root.keys] == [2]
    assert [b.address for b in tree.root.children[0].keys] == [1]
    assert [b.address for b in tree.root.children[1].keys] == [3, 4]


def test_node_is_full():
    node = BNode(leaf=True)
    assert not node.is_full()
    node.keys = [Block(1, a) for a in range(MAX_KEYS)]
    assert node.is_full()


def test_find_returns_block_or_none():
    tree = BTree()
    for i, address in enumerate(range(0x10, 0x200, 0x10)):
        tree.insert(i + 1, address)
    found = tree.find(0x50)
    assert found is not None
    assert found.address == 0x50
    assert found.size == 5
    assert tree.find(0x55) is None
    assert BTree().find(0x10) is None


def test_remove_marks_free():
    tree = _build([0x10, 0x20, 0x30, 0x40, 0x50])
    tree.remove(0x30)
    assert tree.find(0x30).is_free
    assert [b.address for b in tree if b.is_free] == [0x30]
    assert len(tree) == 5


def test_remove_unknown_raises():
    tree = _build([0x10])
    with pytest.raises(KeyError):
        tree.remove(0x99)


def test_best_fit_picks_smallest_adequate_block():
    tree = BTree()
    tree.insert(100, 0x100)
    tree.insert(40, 0x200)
    tree.insert(60, 0x300)
    for address in (0x100, 0x200, 0x300):
        tree.remove(address)
    first = tree.find_best_fit(50)
    assert first.address == 0x300
    assert not first.is_free
    second = tree.find_best_fit(50)
    assert second.address == 0x100
    assert tree.find_best_fit(50) is None


def test_best_fit_ignores_used_and_small_blocks():
    tree = BTree()
    tree.insert(500, 0x10)
    tree.insert(8, 0x20)
    tree.remove(0x20)
    assert tree.find_best_fit(16) is None
    assert tree.find_best_fit(8).address == 0x20
    assert BTree().find_best_fit(1) is None


def test_modified_flag_tracks_changes():
    tree = BTree()
    assert not tree.modified
    tree.insert(4, 0x10)
    assert tree.modified
    tree.modified = False
    tree.find(0x10)
    assert not tree.modified
    tree.remove(0x10)
    assert tree.modified


def test_dump_single_leaf():
    tree = BTree()
    tree.insert(32, 0x10)
    assert tree.dump() == "↳ [ 32@0x10(used) ] leaf"


def test_dump_indents_children():
    tree = _build([1, 2, 3, 4])
    tree.remove(3)
    lines = tree.dump().splitlines()
    assert len(lines) == 3
    assert not lines[0].startswith(" ")
    assert all(line.startswith("  ↳") for line in lines[1:])
    assert "(free)" in lines[2]
    assert BTree().dump() == ""