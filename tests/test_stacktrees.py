import pytest

from ocuroot.stacktrees import Param, Position, build_stack_trees

SOURCE = '''def deploy():
    if ready:
        approval(fn=build, annotation="ok")
    else:
        delay(build, "wait", "1h")
    return result(a.b.c(1))

def build():
    x = handoff(deploy, "ready")
    done()
'''


def _tree(trees, name):
    return next(tree for tree in trees if tree.function_name == name)


def test_trees_sorted_by_name():
    trees = build_stack_trees(SOURCE, "pkg.star")
    assert [tree.function_name for tree in trees] == ["build", "deploy"]


def test_tree_position_points_at_def():
    trees = build_stack_trees(SOURCE, "pkg.star")
    assert _tree(trees, "deploy").pos == Position("pkg.star", 1, 1)
    assert _tree(trees, "build").pos.line == 8


def test_calls_arguments_not_recursed():
    tree = _tree(build_stack_trees(SOURCE, "pkg.star"), "deploy")
    assert [call.function_name for call in tree.calls] == ["approval", "delay", "result"]


def test_keyword_params():
    tree = _tree(build_stack_trees(SOURCE, "pkg.star"), "deploy")
    assert tree.calls[0].params == [
        Param(index=0, name="fn", ident="build"),
        Param(index=1, name="annotation", string="ok"),
    ]


def test_positional_params():
    tree = _tree(build_stack_trees(SOURCE, "pkg.star"), "deploy")
    assert tree.calls[1].params == [
        Param(index=0, ident="build"),
        Param(index=1, string="wait"),
        Param(index=2, string="1h"),
    ]


def test_call_position_and_filename():
    tree = _tree(build_stack_trees(SOURCE, "pkg.star"), "build")
    call = tree.calls[0]
    assert call.filename == "pkg.star"
    assert call.pos == Position("pkg.star", 9, 9)


def test_tree_str():
    tree = _tree(build_stack_trees(SOURCE, "pkg.star"), "build")
    assert str(tree) == "build 2 [handoff done]"


def test_empty_tree_str():
    trees = build_stack_trees("def noop():\n    pass\n", "x.star")
    assert str(trees[0]) == "noop 0 []"


def test_dotted_call_name_and_position():
    trees = build_stack_trees("def f():\n    ctx.tools.run()\n", "x.star")
    call = trees[0].calls[0]
    assert call.function_name == "ctx.tools.run"
    assert call.pos == Position("x.star", 2, 15)


def test_literal_kinds_as_params():
    source = "def f():\n    g(3, True, None, -1, **kw)\n"
    params = build_stack_trees(source, "x.star")[0].calls[0].params
    assert params == [
        Param(index=0, string="3"),
        Param(index=1, ident="True"),
        Param(index=2, ident="None"),
        Param(index=3),
        Param(index=4),
    ]


def test_nested_structures_collected():
    source = (
        "def f():\n"
        "    def inner():\n"
        "        one()\n"
        "    x = [two() for i in items]\n"
        "    y = {three(): four()}\n"
        "    z = five() if c else six()\n"
        "    w = seq[seven():eight()]\n"
        "    v = idx[ignored()]\n"
        "    u = lambda: hidden()\n"
        "    for i in items:\n"
        "        nine()\n"
        "    while c:\n"
        "        ten()\n"
    )
    names = [call.function_name for call in build_stack_trees(source, "x.star")[0].calls]
    assert names == [
        "one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten",
    ]


def test_later_definition_wins():
    source = "def f():\n    a()\n\ndef f():\n    b()\n"
    trees = build_stack_trees(source, "x.star")
    assert len(trees) == 1
    assert [call.function_name for call in trees[0].calls] == ["b"]


def test_bytes_source_accepted():
    trees = build_stack_trees(b"def f():\n    a()\n", "x.star")
    assert [call.function_name for call in trees[0].calls] == ["a"]


def test_syntax_error_raised():
    with pytest.raises(SyntaxError):
        build_stack_trees("def (:\n", "bad.star")