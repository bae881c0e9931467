import logging

import pytest

from apigen.config import GeneratorConfig
from apigen.domain.models import FieldBinding, FieldKind, HandlerSpec, StructBinding, ValidationRule
from apigen.emit.bind import bind_function_name, emit_bind_function
from apigen.emit.dispatch import RouteTableBuilder, emit_router
from apigen.emit.handler import emit_handler
from apigen.emit.prelude import emit_prelude
from apigen.emit.writer import CodeWriter, snake_case


def spec(url, name, receiver="MyApi", **kw):
    return HandlerSpec(
        url=url,
        auth_required=kw.pop("auth", False),
        restricted_method=kw.pop("method", None),
        receiver_type=receiver,
        business_method_name=name,
        params_type=kw.pop("params", "ProfileParams"),
        **kw,
    )


def test_snake_case_names():
    assert snake_case("ProfileParams") == "profile_params"
    assert snake_case("HTTPParams") == "http_params"
    assert snake_case("params") == "params"
    assert bind_function_name("CreateParams") == "bind_create_params"


def test_code_writer_blocks_and_extend():
    inner = CodeWriter()
    with inner.block("if x:"):
        inner.line("y = 1")
    outer = CodeWriter()
    with outer.block("def f(x):"):
        outer.extend(inner)
        outer.blank()
        outer.line("return x")
    assert outer.getvalue() == "def f(x):\n    if x:\n        y = 1\n\n    return x\n"


def test_bind_function_string_checks_in_order():
    rule = ValidationRule(required=True, min=2, max=4, enum_values=("a", "b"), default=None)
    struct = StructBinding("P", (FieldBinding("login", "login", FieldKind.STRING, rule),))
    text = emit_bind_function(struct).getvalue()
    compile(text, "<bind>", "exec")

    order = [
        "model.login = values.get('login', \"\")",
        'if model.login == "":',
        "if len(model.login) > 4:",
        "if len(model.login) < 2:",
        "if model.login not in ('a', 'b'):",
        "return model",
    ]
    positions = [text.index(s) for s in order]
    assert positions == sorted(positions)


def test_bind_function_enum_accepts_empty_when_default():
    rule = ValidationRule(enum_values=("user", "admin"), default="user")
    struct = StructBinding("P", (FieldBinding("status", "status", FieldKind.STRING, rule),))
    text = emit_bind_function(struct).getvalue()
    assert "not in ('user', 'admin', '')" in text
    assert "must be one of [user, admin]" in text
    # default substitution comes after the enum check
    assert text.index("not in (") < text.index("model.status = 'user'")


def test_bind_function_int_field():
    rule = ValidationRule(required=True, min=1, max=10)
    struct = StructBinding("P", (FieldBinding("age", "age", FieldKind.INT, rule),))
    text = emit_bind_function(struct).getvalue()
    compile(text, "<bind>", "exec")
    assert "model.age = _parse_int(values.get('age', \"\"), 'age')" in text
    assert "if model.age == 0:" in text
    assert "if model.age > 10:" in text
    assert "if model.age < 1:" in text


def test_bind_function_int_default():
    rule = ValidationRule(default="3")
    struct = StructBinding("P", (FieldBinding("level", "lvl", FieldKind.INT, rule),))
    text = emit_bind_function(struct).getvalue()
    assert "_parse_int(values.get('lvl') or '3', 'lvl')" in text


def load_bind(struct: StructBinding) -> dict:
    ns: dict = {}
    exec(emit_prelude("x.py", "x", [], GeneratorConfig()).getvalue(), ns)
    exec(f"class {struct.struct_name}:\n    pass\n", ns)
    exec(emit_bind_function(struct).getvalue(), ns)
    return ns


def test_required_int_with_default_does_not_fall_back():
    rule = ValidationRule(required=True, default="5")
    struct = StructBinding("P", (FieldBinding("n", "n", FieldKind.INT, rule),))
    assert "or '5'" not in emit_bind_function(struct).getvalue()

    ns = load_bind(struct)
    with pytest.raises(ns["BindError"], match="n must be int"):
        ns["bind_p"]({})
    assert ns["bind_p"]({"n": "7"}).n == 7


def test_required_string_with_default_still_fails_when_empty():
    rule = ValidationRule(required=True, default="x")
    struct = StructBinding("P", (FieldBinding("s", "s", FieldKind.STRING, rule),))
    ns = load_bind(struct)
    with pytest.raises(ns["BindError"], match="s must be not empty"):
        ns["bind_p"]({})


def test_bind_function_quotes_awkward_literals():
    rule = ValidationRule(default='it\'s "x"')
    struct = StructBinding("P", (FieldBinding("s", "s", FieldKind.STRING, rule),))
    compile(emit_bind_function(struct).getvalue(), "<bind>", "exec")


def test_handler_gates_in_fixed_order():
    text = emit_handler(spec("/user/create", "create", auth=True, method="POST", is_async=True)).getvalue()
    compile(text, "<handler>", "exec")
    order = [
        "async def create_handler(srv: MyApi, request: Request) -> Response:",
        "request.headers.get(AUTH_HEADER) != AUTH_TOKEN",
        "return _error(403, \"unauthorized\")",
        "if request.method != 'POST':",
        "return _error(406, \"bad method\")",
        "params = bind_profile_params(await _request_params(request))",
        "return _error(400, str(exc))",
        "result = await srv.create(params)",
        "return _error(_error_status(exc), str(exc))",
        "return _success(result)",
    ]
    positions = [text.index(s) for s in order]
    assert positions == sorted(positions)


def test_handler_without_gates_and_sync_call():
    text = emit_handler(spec("/user/profile", "profile", passes_request=True)).getvalue()
    assert "AUTH_HEADER" not in text
    assert "request.method" not in text
    assert "result = await run_in_threadpool(srv.profile, request, params)" in text
    assert "srv.profile(" not in text


def test_route_table_groups_by_receiver_in_first_seen_order():
    b = RouteTableBuilder()
    b.add(spec("/a", "a", receiver="Second"))
    b.add(spec("/b", "b", receiver="First"))
    b.add(spec("/c", "c", receiver="Second"))
    table = b.build()
    assert table.receivers() == ["Second", "First"]
    assert [s.url for s in dict(table.routes)["Second"]] == ["/a", "/c"]


def test_route_table_last_registration_wins(caplog):
    b = RouteTableBuilder()
    b.add(spec("/a", "first"))
    b.add(spec("/b", "other"))
    with caplog.at_level(logging.WARNING):
        b.add(spec("/a", "second"))
    routes = dict(b.build().routes)["MyApi"]
    assert [(s.url, s.business_method_name) for s in routes] == [("/a", "second"), ("/b", "other")]
    assert "second wins" in caplog.text


def test_route_table_is_finalized_once():
    b = RouteTableBuilder()
    b.build()
    with pytest.raises(RuntimeError):
        b.add(spec("/a", "a"))


def test_router_switches_on_path_with_404_default():
    text = emit_router("MyApi", [spec("/a", "a"), spec("/b", "b")]).getvalue()
    compile(text, "<router>", "exec")
    assert "class MyApiRouter:" in text
    assert "if path == '/a':\n            return await a_handler(self.srv, request)" in text
    assert "if path == '/b':\n            return await b_handler(self.srv, request)" in text
    assert text.index("b_handler") < text.index('return _error(404, "unknown method")')
    assert "async def __call__(self, scope, receive, send) -> None:" in text
