from config import LATEST_MODEL_DEFAULTS, _parse_allowed_users, load_config


def test_defaults(clean_env):
    cfg = load_config()
    assert cfg.llm_provider == ""
    assert cfg.llm_model == LATEST_MODEL_DEFAULTS["claude"]
    assert cfg.recent_notes_days == 3
    assert cfg.history_max_messages == 20
    assert cfg.system_prompt_capacity == 16384
    assert cfg.history_capacity == 65536
    assert cfg.telegram_allowed_users == []


def test_provider_is_detected_from_keys(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    cfg = load_config()
    assert cfg.llm_provider == "openai"
    assert cfg.llm_model == LATEST_MODEL_DEFAULTS["openai"]

    clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant")
    assert load_config().llm_provider == "claude"


def test_explicit_provider_and_model(clean_env):
    clean_env.setenv("LLM_PROVIDER", "  DeepSeek  # cheap")
    clean_env.setenv("LLM_MODEL", "latest")
    cfg = load_config()
    assert cfg.llm_provider == "deepseek"
    assert cfg.llm_model == LATEST_MODEL_DEFAULTS["deepseek"]

    clean_env.setenv("LLM_MODEL", "deepseek-reasoner")
    assert load_config().llm_model == "deepseek-reasoner"


def test_bad_integers_fall_back_and_floors_apply(clean_env):
    clean_env.setenv("HISTORY_MAX_MESSAGES", "lots")
    clean_env.setenv("SYSTEM_PROMPT_CAPACITY", "10")
    clean_env.setenv("RECENT_NOTES_DAYS", "-4")
    clean_env.setenv("MAX_OUTPUT_TOKENS", "8192 # generous")
    cfg = load_config()
    assert cfg.history_max_messages == 20
    assert cfg.system_prompt_capacity == 1024
    assert cfg.recent_notes_days == 0
    assert cfg.max_output_tokens == 8192


def test_allowed_users_parsing():
    assert _parse_allowed_users("123, abc, -456 # comment") == ["123", "-456"]
    assert _parse_allowed_users("# nobody") == []
    assert _parse_allowed_users("") == []
