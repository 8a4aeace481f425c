import datetime

import pytest

from graphcodegen.compiler import (
    CodeGenerator,
    CyclicDataDependencyError,
    GenerationError,
    NoEntryPointError,
    generate_code,
)
from graphcodegen.compiler.templates import (
    header,
    render_value,
    splice_block,
    strip_unresolved,
    substitute,
    timestamp,
)
from graphcodegen.core.Connections import connect
from graphcodegen.core.Types import PortDirection

IN = PortDirection.INPUT
OUT = PortDirection.OUTPUT

NOW = datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)


def link(graph, source, target, source_index=0, target_index=0):
    result = connect(graph, source.ref(OUT, source_index), target.ref(IN, target_index))
    assert result is not None
    return result


class TestTemplates:

    def test_substitute_is_literal(self):
        assert substitute("x = ${value};", "value", r"$1\n") == r"x = $1\n;"
        assert substitute("${a} ${a} ${b}", "a", "1") == "1 1 ${b}"

    @pytest.mark.parametrize("value, expected", [
        (True, "true"),
        (False, "false"),
        (5, "5"),
        (5.0, "5"),
        (2.5, "2.5"),
        ("hi", "hi"),
        ({"x": 1, "y": 2, "z": 3}, '{"x":1,"y":2,"z":3}'),
        ([1, "é"], '[1,"é"]'),
    ])
    def test_render_value(self, value, expected):
        assert render_value(value) == expected

    def test_splice_block_indents_every_line(self):
        template = "loop {\n    ${body}\n}"
        assert splice_block(template, "body", "a();\nb();") == "loop {\n    a();\n    b();\n}"

    def test_splice_empty_block_removes_line(self):
        assert splice_block("a();\n    ${next}", "next", "") == "a();"

    def test_splice_without_newline(self):
        assert splice_block("${next}", "next", "x();") == "x();"

    def test_strip_unresolved(self):
        assert strip_unresolved("a(${x});\n  ${next}\nb();") == "a();\nb();"

    def test_header(self):
        assert timestamp(NOW) == "2024-01-02T03:04:05.000Z"
        assert header("#", NOW) == (
            "# Generated Code from Node Graph\n"
            "# Generated on: 2024-01-02T03:04:05.000Z\n\n"
        )

    def test_naive_timestamp_is_treated_as_utc(self):
        assert timestamp(datetime.datetime(2024, 1, 2, 3, 4, 5, 678000)) == "2024-01-02T03:04:05.678Z"


class TestControlFlow:

    def test_exec_chain(self, graph):
        printer = graph.add_node("flow", "print")
        done = graph.add_node("flow", "done")
        link(graph, printer, done)

        assert CodeGenerator(graph).generate_body() == "print(0);\ndone();"

    def test_header_and_body(self, graph):
        graph.add_node("flow", "done")

        code = generate_code(graph, now=NOW)

        assert code == (
            "// Generated Code from Node Graph\n"
            "// Generated on: 2024-01-02T03:04:05.000Z\n\n"
            "done();"
        )

    def test_comment_style_from_registry(self, graph):
        graph.registry.add_registry({"codeGeneration": {"commentStyle": "#"}})
        graph.add_node("flow", "done")

        assert generate_code(graph, now=NOW).startswith("# Generated Code from Node Graph\n")

    def test_unconnected_next_is_dropped(self, graph):
        graph.add_node("flow", "print")
        assert CodeGenerator(graph).generate_body() == "print(0);"

    def test_no_entry_point(self, graph):
        graph.add_node("math", "constant")

        with pytest.raises(NoEntryPointError):
            generate_code(graph)

    def test_empty_graph(self, graph):
        with pytest.raises(GenerationError):
            generate_code(graph)

    def test_entry_nodes(self, graph):
        p0 = graph.add_node("flow", "print")
        p1 = graph.add_node("flow", "print")
        graph.add_node("math", "add")
        link(graph, p0, p1)

        assert CodeGenerator(graph).entry_nodes() == [p0]

    def test_implicit_entry_indents_block(self, graph):
        start = graph.add_node("events", "on_start")
        printer = graph.add_node("flow", "print")
        done = graph.add_node("flow", "done")
        link(graph, start, printer)
        link(graph, printer, done)

        assert CodeGenerator(graph).generate_body() == "main() {\n    print(1);\n    done();\n}"

    def test_merged_flow_is_emitted_once(self, graph):
        p0 = graph.add_node("flow", "print")
        p1 = graph.add_node("flow", "print")
        done = graph.add_node("flow", "done")
        link(graph, p0, done)
        link(graph, p1, done)

        assert CodeGenerator(graph).generate_body() == "print(0);\ndone();\n\nprint(1);"

    def test_exec_self_cycle_emits_node_once(self, graph):
        p0 = graph.add_node("flow", "print")
        p1 = graph.add_node("flow", "print")
        link(graph, p0, p1)
        # bypasses the connection rules on purpose
        graph.add_link(p1.ref(OUT, 0), p1.ref(IN, 0))

        assert CodeGenerator(graph).generate_body() == "print(0);\nprint(1);"

    def test_branch(self, graph):
        branch = graph.add_node("flow", "branch")
        inner = graph.add_node("flow", "print")
        after = graph.add_node("flow", "done")
        link(graph, branch, inner, source_index=0)
        link(graph, branch, after, source_index=1)

        assert CodeGenerator(graph).generate_body() == "if () {\n    print(1);\n}\ndone();"


class TestDataFlow:

    def _add_of_constants(self, graph):
        a = graph.add_node("math", "constant")
        b = graph.add_node("math", "constant")
        add = graph.add_node("math", "add")
        a.set_value(5)
        b.set_value(3)
        link(graph, a, add, target_index=0)
        link(graph, b, add, target_index=1)
        return add

    def test_value_chain(self, graph):
        add = self._add_of_constants(graph)

        assert CodeGenerator(graph).output_code(add, add.outputs[0]) == "5 + 3"

    def test_value_chain_into_statement(self, graph):
        add = self._add_of_constants(graph)
        log = graph.add_node("flow", "log")
        link(graph, add, log, target_index=1)

        assert CodeGenerator(graph).generate_body() == "log(5 + 3);"

    def test_diamond_is_evaluated_twice(self, graph):
        a = graph.add_node("math", "constant")
        a.set_value(2.0)
        add = graph.add_node("math", "add")
        link(graph, a, add, target_index=0)
        link(graph, a, add, target_index=1)

        assert CodeGenerator(graph).output_code(add, add.outputs[0]) == "2 + 2"

    def test_unconnected_input_is_dropped(self, graph):
        graph.add_node("flow", "log")
        assert CodeGenerator(graph).generate_body() == "log();"

    def test_string_value(self, graph):
        text = graph.add_node("text", "string")
        text.set_value("hello")
        inspect = graph.add_node("flow", "inspect")
        link(graph, text, inspect, target_index=1)

        assert CodeGenerator(graph).generate_body() == 'inspect("hello");'

    def test_generation_does_not_mutate(self, graph):
        add = self._add_of_constants(graph)
        log = graph.add_node("flow", "log")
        link(graph, add, log, target_index=1)
        before = [(l.id, l.from_port, l.to_port) for l in graph.links]

        generate_code(graph, now=NOW)

        assert [(l.id, l.from_port, l.to_port) for l in graph.links] == before
        assert list(graph.nodes) == [0, 1, 2, 3]

    def test_data_cycle_raises(self, graph):
        first = graph.add_node("math", "add")
        second = graph.add_node("math", "add")
        log = graph.add_node("flow", "log")
        link(graph, first, second, target_index=0)
        link(graph, second, first, target_index=0)
        link(graph, first, log, target_index=1)

        with pytest.raises(CyclicDataDependencyError) as exc_info:
            generate_code(graph)
        assert exc_info.value.path == [first.id, second.id, first.id]

    def test_depth_limit(self, graph):
        previous = graph.add_node("math", "constant")
        previous.set_value(1)
        for _ in range(5):
            add = graph.add_node("math", "add")
            link(graph, previous, add, target_index=0)
            previous = add

        generator = CodeGenerator(graph, max_data_depth=3)
        with pytest.raises(CyclicDataDependencyError):
            generator.output_code(previous, previous.outputs[0])

        code = CodeGenerator(graph).output_code(previous, previous.outputs[0])
        assert code.startswith("1 + ")
        assert "${" not in code
