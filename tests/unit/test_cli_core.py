from assembly_map.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["build"])
    assert args.command == "build"
    assert args.config_dir == "./config"
    assert args.overlay_config_dir is None
    assert args.strict is False
    assert args.view == ""
    assert args.search is None


def test_parse_args_accepts_overlay_config_dir():
    args = parse_args(["all", "--overlay-config-dir", "config/live"])
    assert args.overlay_config_dir == "config/live"


def test_parse_args_accepts_query_options():
    args = parse_args(["query", "--view", "mode=TURNOUT&state=Goa", "--output", "view.json"])
    assert args.command == "query"
    assert args.view == "mode=TURNOUT&state=Goa"
    assert args.output == "view.json"
