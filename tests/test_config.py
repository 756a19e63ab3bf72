import pytest

from sylar.config import Config, ConfigVar


@pytest.fixture(autouse=True)
def fresh_registry():
    Config.clear()
    yield
    Config.clear()


def test_lookup_creates_and_reuses():
    first = Config.lookup("system.port", 8080, "port")
    second = Config.lookup("system.port", 1)
    assert first is second
    assert second.value == 8080
    assert first.description == "port"


def test_lookup_invalid_name_raises():
    with pytest.raises(ValueError):
        Config.lookup("System.Port", 1)


def test_lookup_type_mismatch_returns_none():
    Config.lookup("system.port", 8080)
    assert Config.lookup("system.port", "text") is None


def test_find_and_lookup_base():
    var = Config.lookup("a.b", 1.5)
    assert Config.find("a.b") is var
    assert Config.lookup_base("a.b") is var
    assert Config.find("missing") is None


def test_int_string_round_trip():
    var = Config.lookup("system.port", 8080)
    assert var.to_string() == "8080"
    assert var.from_string("9090") is True
    assert var.value == 9090


def test_from_string_failure_keeps_value():
    var = Config.lookup("system.port", 8080)
    assert var.from_string("not a number") is False
    assert var.value == 8080


def test_list_round_trip():
    var = Config.lookup("system.int_vec", [1, 2])
    text = var.to_string()
    var.value = [7]
    assert var.from_string(text) is True
    assert var.value == [1, 2]
    assert var.from_string("- 3\n- 4") is True
    assert var.value == [3, 4]


def test_set_and_dict_conversion():
    set_var = Config.lookup("system.int_set", {1, 2})
    assert set_var.from_string("[5, 5, 6]") is True
    assert set_var.value == {5, 6}
    map_var = Config.lookup("system.str_int_map", {"k": 1})
    assert map_var.from_string("x: 10\ny: 20") is True
    assert map_var.value == {"x": 10, "y": 20}


def test_string_value_taken_verbatim():
    var = Config.lookup("system.name", "default")
    assert var.from_string("hello: world") is True
    assert var.value == "hello: world"
    assert var.to_string() == "hello: world"


def test_listeners():
    var = Config.lookup("system.port", 8080)
    calls = []
    key = var.add_listener(lambda old, new: calls.append((old, new)))
    var.value = 9000
    var.value = 9000
    assert calls == [(8080, 9000)]
    assert var.get_listener(key) is not None and callable(var.get_listener(key))
    var.del_listener(key)
    assert var.get_listener(key) is None
    var.value = 1
    assert calls == [(8080, 9000)]


def test_clear_listeners():
    var = Config.lookup("system.port", 8080)
    calls = []
    var.add_listener(lambda old, new: calls.append(new))
    var.clear_listeners()
    var.value = 3
    assert calls == []
    assert var.value == 3


def test_listener_keys_are_unique():
    var = Config.lookup("system.port", 8080)
    keys = {var.add_listener(lambda o, n: None) for _ in range(5)}
    assert len(keys) == 5


def test_load_from_string_updates_nested_values():
    port = Config.lookup("system.port", 8080)
    vec = Config.lookup("system.int_vec", [1])
    name = Config.lookup("system.name", "x")
    Config.load_from_string("system:\n  port: 9900\n  int_vec:\n    - 10\n    - 30\n  name: abc\n")
    assert port.value == 9900
    assert vec.value == [10, 30]
    assert name.value == "abc"


def test_load_ignores_invalid_keys():
    port = Config.lookup("system.port", 8080)
    Config.load_from_yaml({"System": {"port": 1}})
    assert port.value == 8080


def test_visit_sees_every_variable():
    Config.lookup("a.one", 1)
    Config.lookup("a.two", "two")
    seen = []
    Config.visit(lambda var: seen.append(var.name))
    assert sorted(seen) == ["a.one", "a.two"]


def test_config_var_lowercases_name():
    var = ConfigVar("Mixed.Name", 1)
    assert var.name == "mixed.name"
    assert var.type_name == "int"