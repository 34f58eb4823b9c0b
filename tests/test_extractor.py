from court_finder.extractor import extract_js_object, find_datapickup_url, read_balanced_braces


def test_extracts_nested_object():
    text = 'var mmDataPickup = {"a":{"b":1}};'
    assert extract_js_object(text, "mmDataPickup") == '{"a":{"b":1}}'


def test_brace_inside_string_does_not_end_object():
    text = 'var mmDataPickup = {"name":"A}B","x":1};'
    assert extract_js_object(text, "mmDataPickup") == '{"name":"A}B","x":1}'


def test_single_quoted_strings_are_skipped():
    text = "x = {'a': '{{', 'b': 2}; trailing"
    assert extract_js_object(text, "x") == "{'a': '{{', 'b': 2}"


def test_escaped_quote_keeps_string_open():
    text = r'var v = {"s":"say \"}\" now","n":1};'
    assert extract_js_object(text, "v") == r'{"s":"say \"}\" now","n":1}'


def test_double_backslash_before_quote_is_not_interpreted():
    # "\\" followed by a quote still reads as an escaped quote.
    text = r'var v = {"s":"dir\\"} , "t":"}"};'
    assert extract_js_object(text, "v") == r'{"s":"dir\\"} , "t":"}'


def test_variable_match_is_case_insensitive():
    text = 'MMDATAPICKUP = {"a":1};'
    assert extract_js_object(text, "mmDataPickup") == '{"a":1}'


def test_first_occurrence_wins():
    text = 'var v = {"first":1}; var v = {"second":2};'
    assert extract_js_object(text, "v") == '{"first":1}'


def test_dotted_path_targets_member_assignment():
    text = 'mmDataPickup._C = {"SH":6}; mmDataPickup.Data = {"202510":{}};'
    assert extract_js_object(text, "mmDataPickup.Data") == '{"202510":{}}'


def test_missing_variable_equals_or_brace_returns_none():
    assert extract_js_object('var other = {"a":1};', "mmDataPickup") is None
    assert extract_js_object("mmDataPickup is not assigned", "mmDataPickup") is None
    assert extract_js_object("mmDataPickup = 42;", "mmDataPickup") is None
    assert extract_js_object(None, "mmDataPickup") is None
    assert extract_js_object("", "mmDataPickup") is None


def test_unbalanced_object_returns_none():
    assert extract_js_object('var v = {"a":{"b":1};', "v") is None


def test_read_balanced_braces_from_offset():
    text = 'prefix {"k":[1,2,{"x":"}"}]} suffix'
    start = text.index("{")
    assert read_balanced_braces(text, start) == '{"k":[1,2,{"x":"}"}]}'


def test_find_datapickup_url_resolves_relative_src():
    html = """
    <html><head>
      <script src="/js/jquery.min.js"></script>
      <script src="/datapickupv5.php?K=163&amp;D=1"></script>
    </head></html>
    """
    assert find_datapickup_url(html, "https://vbs.example.test/") == (
        "https://vbs.example.test/datapickupv5.php?K=163&D=1"
    )


def test_find_datapickup_url_keeps_absolute_src():
    html = '<script src="https://cdn.example.test/DataPickupV5.php?K=9"></script>'
    assert find_datapickup_url(html, "https://vbs.example.test") == "https://cdn.example.test/DataPickupV5.php?K=9"


def test_find_datapickup_url_without_script():
    assert find_datapickup_url("<html><script>var a = 1;</script></html>", "https://vbs.example.test") is None
    assert find_datapickup_url(None, "https://vbs.example.test") is None
