from __future__ import annotations

from pystep import Interpreter, ScriptedInputProvider


def test_assignment_then_print(run_program):
    interp = run_program("x = 1\nprint(x)\n")
    snap = interp.get_snapshot()
    assert snap["outputs"] == ["1"]
    assert snap["variables"] == {"x": 1}
    assert snap["error"] is None


def test_for_loop_prints_each_item_and_drops_counter(run_program):
    source = """
for i in [1, 2, 3]:
    print(i)
"""
    snap = run_program(source).get_snapshot()
    assert snap["outputs"] == ["1", "2", "3"]
    assert "i" not in snap["loop_iteration_state"]
    assert snap["variables"] == {"i": 3}


def test_division_by_zero_is_sticky(compiled):
    interp = compiled("x = 1 / 0\n")
    assert interp.step_forward() is False
    snap = interp.get_snapshot()
    assert snap["error"]["kind"] == "ZeroDivisionError"
    assert snap["error"]["line"] == 1
    assert snap["can_step_forward"] is False
    assert snap["can_step_backward"] is True
    assert interp.step_forward() is False


def test_negative_index_access(run_program):
    interp = run_program("lst = [1, 2, 3]\nprint(lst[-1])\n")
    assert interp.state.outputs == ["3"]


def test_unbound_name_reports_name_error(run_program):
    snap = run_program("print(y)\n").get_snapshot()
    assert snap["error"] == {"kind": "NameError", "message": "name 'y' is not defined", "line": 1}
    assert snap["outputs"] == []


def test_error_message_carries_line(run_program):
    interp = run_program("x = 1\ny = x // 0\n")
    assert str(interp.state.error) == "ZeroDivisionError: integer division or modulo by zero (line 2)"


def test_arithmetic_and_strings(run_program):
    source = """
a = 7 // 2
b = -7 // 2
c = 7 % 3
d = 2 ** 10
e = "ab" + "cd"
f = "ab" * 3
g = [1] + [2, 3]
h = 7 / 2
"""
    snap = run_program(source).get_snapshot()
    assert snap["variables"] == {
        "a": 3,
        "b": -4,
        "c": 1,
        "d": 1024,
        "e": "abcd",
        "f": "ababab",
        "g": [1, 2, 3],
        "h": 3.5,
    }


def test_mixed_concatenation_is_type_error(run_program):
    interp = run_program('x = "n=" + 1\n')
    assert interp.state.error.kind == "TypeError"
    assert "can only concatenate str" in interp.state.error.message


def test_comparisons_and_membership(run_program):
    source = """
a = 1 < 2 <= 2
b = 3 in [1, 2, 3]
c = "ell" in "hello"
d = 4 not in [1, 2]
e = None is None
f = 1 != 1
"""
    snap = run_program(source).get_snapshot()
    assert snap["variables"] == {"a": True, "b": True, "c": True, "d": True, "e": True, "f": False}


def test_unary_operators(run_program):
    snap = run_program("a = -5\nb = not 0\nc = +2.5\n").get_snapshot()
    assert snap["variables"] == {"a": -5, "b": True, "c": 2.5}


def test_unary_minus_on_string_is_type_error(run_program):
    interp = run_program('x = -"a"\n')
    assert interp.state.error.kind == "TypeError"


def test_logical_operators_return_operands_and_short_circuit(run_program):
    source = """
x = 0
ok = x != 0 and 10 / x > 1
v = [] or "default"
w = 3 and 4
"""
    interp = run_program(source)
    assert interp.state.error is None
    assert interp.state.variables == {"x": 0, "ok": False, "v": "default", "w": 4}


def test_conditional_expression_runs_only_chosen_branch(run_program):
    interp = run_program("x = 0\ny = 1 if x == 0 else 1 / x\nz = 'a' if x else 'b'\n")
    assert interp.state.error is None
    assert interp.state.variables["y"] == 1
    assert interp.state.variables["z"] == "b"


def test_if_elif_else_chain(run_program):
    source = """
x = 2
if x == 1:
    y = "a"
elif x == 2:
    y = "b"
else:
    y = "c"
after = True
"""
    interp = run_program(source)
    assert interp.state.variables == {"x": 2, "y": "b", "after": True}


def test_while_with_break_and_continue(run_program):
    source = """
n = 0
while True:
    n += 1
    if n == 3:
        break
i = 0
evens = []
while i < 6:
    i += 1
    if i % 2 == 1:
        continue
    evens.append(i)
"""
    snap = run_program(source).get_snapshot()
    assert snap["variables"]["n"] == 3
    assert snap["variables"]["evens"] == [2, 4, 6]
    assert snap["loop_iteration_state"] == {}


def test_nested_loops_with_break_and_continue(run_program):
    source = """
total = 0
for i in range(3):
    for j in range(3):
        if j == i:
            continue
        if j > i:
            break
        total += 10 * i + j
done = True
"""
    interp = run_program(source)
    assert interp.state.variables["total"] == 51
    assert interp.state.variables["done"] is True
    assert interp.state.loop_stack == []
    assert interp.state.evaluation_stack == []


def test_reused_loop_variable_keeps_outer_position(run_program):
    source = """
out = []
for i in range(2):
    for i in range(3):
        out.append(i)
"""
    interp = run_program(source)
    assert interp.state.variables["out"] == [0, 1, 2, 0, 1, 2]
    assert interp.state.loop_iteration_state == {}


def test_for_over_string(run_program):
    interp = run_program('s = ""\nfor ch in "abc":\n    s = ch + s\n')
    assert interp.state.variables["s"] == "cba"


def test_for_over_number_is_type_error(run_program):
    interp = run_program("for i in 5:\n    pass\n")
    assert interp.state.error.kind == "TypeError"
    assert interp.state.error.message == "'int' object is not iterable"


def test_multi_assignment_swaps(run_program):
    interp = run_program("a, b = 1, 2\na, b = b, a\n")
    assert interp.state.variables == {"a": 2, "b": 1}


def test_compound_assignment_to_unbound_name(run_program):
    interp = run_program("count += 1\n")
    assert interp.state.error.kind == "NameError"


def test_indexed_assignment(run_program):
    source = """
xs = [1, 2, 3]
xs[0] = 10
xs[-1] += 5
"""
    interp = run_program(source)
    assert interp.state.variables["xs"] == [10, 2, 8]


def test_indexed_assignment_errors(run_program):
    assert run_program("xs = [1]\nxs[3] = 0\n").state.error.kind == "IndexError"
    assert run_program('xs = [1]\nxs["a"] = 0\n').state.error.kind == "TypeError"
    assert run_program('s = "ab"\ns[0] = "c"\n').state.error.kind == "TypeError"


def test_index_and_slice_access(run_program):
    source = """
s = "hello"
a = s[1:4]
b = s[::-1]
c = [1, 2, 3, 4][::2]
d = s[-2]
e = [1, 2, 3][-2:]
"""
    snap = run_program(source).get_snapshot()
    variables = snap["variables"]
    assert (variables["a"], variables["b"], variables["c"], variables["d"], variables["e"]) == (
        "ell",
        "olleh",
        [1, 3],
        "l",
        [2, 3],
    )


def test_slice_with_zero_step(run_program):
    interp = run_program("x = [1, 2][::0]\n")
    assert interp.state.error.kind == "ValueError"


def test_index_out_of_range(run_program):
    interp = run_program("x = [1, 2][2]\n")
    assert interp.state.error.kind == "IndexError"
    assert interp.state.error.message == "list index out of range"


# ----- functions -----


def test_recursive_function(run_program):
    source = """
def fact(n):
    if n <= 1:
        return 1
    return n * fact(n - 1)
result = fact(5)
"""
    snap = run_program(source).get_snapshot()
    assert snap["variables"] == {"result": 120}
    assert snap["scope_names"] == ["Global"]
    assert snap["function_definitions"]["fact"]["params"] == ["n"]


def test_tail_recursive_return_keeps_value(run_program):
    source = """
def gcd(a, b):
    if b == 0:
        return a
    return gcd(b, a % b)
def countdown(n):
    if n == 0:
        return 7
    return countdown(n - 1)
print(gcd(48, 18))
print(countdown(2))
"""
    interp = run_program(source)
    assert interp.state.error is None
    assert interp.state.outputs == ["6", "7"]
    assert interp.state.evaluation_stack == []
    assert interp.state.call_stack == []
    assert interp.state.scope_names == ["Global"]


def test_return_inside_loop_unwinds(run_program):
    source = """
def first_even(xs):
    for x in xs:
        if x % 2 == 0:
            return x
    return -1
a = first_even([1, 3, 4, 5])
b = first_even([1, 3])
"""
    interp = run_program(source)
    assert interp.state.variables == {"a": 4, "b": -1}
    assert interp.state.loop_stack == []
    assert interp.state.loop_iteration_state == {}
    assert interp.state.evaluation_stack == []
    assert interp.state.call_stack == []


def test_function_without_return_gives_none(run_program):
    source = """
def greet(name):
    print("hi " + name)
r = greet("bob")
"""
    interp = run_program(source)
    assert interp.state.outputs == ["hi bob"]
    assert interp.state.variables == {"r": None}


def test_function_sees_globals_and_binds_locally(run_program):
    source = """
base = 10
def add(x):
    y = x + base
    return y
z = add(5)
"""
    interp = run_program(source)
    assert interp.state.variables == {"base": 10, "z": 15}


def test_wrong_argument_count(run_program):
    source = """
def f(a, b):
    return a
f(1)
"""
    error = run_program(source).state.error
    assert error.kind == "TypeError"
    assert error.message == "f() takes 2 positional arguments but 1 was given"
    assert error.line == 4


def test_unknown_function(run_program):
    assert run_program("nope(1)\n").state.error.kind == "NameError"


def test_recursion_depth_limit(run_program):
    source = """
def down(n):
    return down(n + 1)
down(0)
"""
    interp = run_program(source, max_call_depth=50)
    assert interp.state.error.kind == "RuntimeError"
    assert interp.state.error.message == "maximum recursion depth exceeded"
    assert len(interp.state.call_stack) == 50


def test_break_outside_loop(compiled):
    interp = compiled("break\n")
    interp.to_end()
    assert interp.state.error.message == "'break' outside loop"


def test_break_in_function_does_not_see_callers_loop(run_program):
    source = """
def f():
    continue
for i in [1]:
    f()
"""
    interp = run_program(source)
    assert interp.state.error.kind == "RuntimeError"
    assert interp.state.error.message == "'continue' not properly in loop"


def test_return_outside_function(run_program):
    interp = run_program("return 5\n")
    assert interp.state.error.message == "'return' outside function"


def test_redefinition_is_used(run_program):
    source = """
def f():
    return 1
a = f()
def f():
    return 2
b = f()
"""
    interp = run_program(source)
    assert interp.state.variables == {"a": 1, "b": 2}


# ----- built-ins and methods -----


def test_builtins(run_program):
    source = """
print(1, True, None, [1, "a"])
a = len("abc")
b = type(None)
c = range(5, 0, -2)
d = int("42")
e = int(3.9)
f = float(True)
g = str([1, "a"])
h = bool("")
i = list("ab")
j = list()
"""
    interp = run_program(source)
    variables = interp.state.variables
    assert interp.state.outputs == ["1 True None [1, 'a']"]
    assert variables["a"] == 3
    assert variables["b"] == "<class 'NoneType'>"
    assert variables["c"] == [5, 3, 1]
    assert (variables["d"], variables["e"], variables["f"]) == (42, 3, 1.0)
    assert variables["g"] == "[1, 'a']"
    assert variables["h"] is False
    assert variables["i"] == ["a", "b"]
    assert variables["j"] == []


def test_builtin_errors(run_program):
    assert run_program('x = int("x")\n').state.error.kind == "ValueError"
    assert run_program("x = range(1, 5, 0)\n").state.error.kind == "ValueError"
    assert run_program("x = range(1.5)\n").state.error.kind == "TypeError"
    assert run_program("x = len(5)\n").state.error.kind == "TypeError"
    assert run_program("x = len()\n").state.error.message == "len() takes exactly 1 argument (0 given)"
    assert run_program("x = list(5)\n").state.error.kind == "TypeError"


def test_input_uses_provider():
    provider = ScriptedInputProvider(["Bob"])
    interp = Interpreter(input_provider=provider)
    assert interp.compile('name = input("Name? ")\nprint("hi " + name)\nrest = input()\n')
    interp.to_end()
    assert interp.state.outputs == ["hi Bob"]
    assert interp.state.variables["rest"] == ""
    assert provider.prompts == ["Name? ", ""]


def test_input_replays_after_step_back():
    provider = ScriptedInputProvider(["first", "second"])
    interp = Interpreter(input_provider=provider)
    assert interp.compile("x = input()\nprint(x)\n")
    interp.to_end()
    assert interp.state.outputs == ["first"]
    interp.to_beginning()
    interp.to_end()
    assert interp.state.outputs == ["first"]
    assert interp.state.variables == {"x": "first"}
    assert len(provider.prompts) == 1


def test_input_inside_fstring_is_replayed():
    provider = ScriptedInputProvider(["a", "b"])
    interp = Interpreter(input_provider=provider)
    assert interp.compile('s = f"<{input()}>"\nt = input()\n')
    interp.to_end()
    assert interp.state.variables == {"s": "<a>", "t": "b"}
    interp.to_beginning()
    assert interp.state.input_cursor == 0
    interp.to_end()
    assert interp.state.variables == {"s": "<a>", "t": "b"}
    assert len(provider.prompts) == 2


def test_input_without_provider(run_program):
    assert run_program("x = input()\n").state.error.kind == "RuntimeError"


def test_list_methods(run_program):
    source = """
xs = [3, 1, 2]
xs.append(4)
n = xs.count(1)
last = xs.pop()
first = xs.pop(0)
xs.sort()
xs.reverse()
xs.remove(2)
where = xs.index(1)
missing = xs.index(99)
has = xs.contains(1)
"""
    variables = run_program(source).state.variables
    assert variables["xs"] == [1]
    assert (variables["n"], variables["last"], variables["first"]) == (1, 4, 3)
    assert (variables["where"], variables["missing"], variables["has"]) == (0, -1, True)


def test_string_methods(run_program):
    variables = run_program('s = "banana"\na = s.count("a")\nb = s.index("n")\nc = s.contains("nan")\n').state.variables
    assert (variables["a"], variables["b"], variables["c"]) == (3, 2, True)


def test_method_errors(run_program):
    assert run_program("xs = []\nxs.pop()\n").state.error.kind == "IndexError"
    assert run_program("xs = [1]\nxs.remove(5)\n").state.error.kind == "ValueError"
    error = run_program("xs = [1]\nxs.push(5)\n").state.error
    assert error.kind == "TypeError"
    assert error.message == "'list' object has no attribute 'push'"
    assert run_program('s = "a"\ns.append("b")\n').state.error.kind == "TypeError"


# ----- f-strings -----


def test_fstring_interpolation(run_program):
    source = """
name = "Ada"
n = 3
xs = ["a"]
pi = 3.14159
msg = f"{name} has {n * 2} items"
fmt = f"{{literal}} {xs[0]!r} {pi:.2f}"
"""
    variables = run_program(source).state.variables
    assert variables["msg"] == "Ada has 6 items"
    assert variables["fmt"] == "{literal} 'a' 3.14"


def test_fstring_sees_function_locals(run_program):
    source = """
def show(v):
    return f"v={v + 1}"
s = show(1)
"""
    assert run_program(source).state.variables["s"] == "v=2"


def test_fstring_errors(run_program):
    assert run_program('s = f"{missing}"\n').state.error.kind == "NameError"
    assert run_program('s = f"{1 / 0}"\n').state.error.kind == "ZeroDivisionError"
    source = """
def f():
    return 1
s = f"{f()}"
"""
    assert run_program(source).state.error.kind == "RuntimeError"


def test_print_inside_fstring_writes_output(compiled):
    interp = compiled("s = f\"{print('hi')}\"\nprint(s)\n")
    interp.to_end()
    assert interp.state.outputs == ["hi", "None"]
    while interp.state.outputs == ["hi", "None"]:
        assert interp.step_back()
    assert interp.state.outputs == ["hi"]
    interp.to_beginning()
    assert interp.state.outputs == []


def test_reset_keeps_program_and_clears_state(compiled):
    interp = compiled("x = 1\nprint(x)\n")
    interp.to_end()
    interp.reset()
    snap = interp.get_snapshot()
    assert snap["outputs"] == []
    assert snap["variables"] == {}
    assert snap["current_step"] == 0
    assert interp.history_size == 0
    interp.to_end()
    assert interp.state.outputs == ["1"]
