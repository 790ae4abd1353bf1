from laterlist import AppConfig


def test_defaults_when_missing(tmp_path):
	config = AppConfig.load(tmp_path / "config.json")
	assert config.storage_key == "readLaterData"
	assert config.pull_timeout == 1.0


def test_round_trip_ignores_unknown_keys(tmp_path):
	path = tmp_path / "config.json"
	path.write_text('{"pull_timeout": 2.5, "colour": "blue"}', encoding="utf-8")
	config = AppConfig.load(path)
	assert config.pull_timeout == 2.5
	config.save(path)
	assert AppConfig.load(path).to_dict() == config.to_dict()


def test_unreadable_file_uses_defaults(tmp_path):
	path = tmp_path / "config.json"
	path.write_text("{not json", encoding="utf-8")
	assert AppConfig.load(path) == AppConfig()


def test_validate():
	assert AppConfig().validate()
	assert not AppConfig(storage_key="").validate()
	assert not AppConfig(active_tab_key="readLaterData").validate()
	assert not AppConfig(pull_timeout=0).validate()
	assert not AppConfig(restore_container_name=" ").validate()
