from app.services.auto_reply_service import (
    AutoReplyTable,
    ReplyRule,
    load_auto_reply_table,
    match_rule,
    rule_based_reply,
)


def _table():
    return AutoReplyTable(
        handoff_keywords=("atendente",),
        handoff_message="Transferindo",
        ai_failure_message="Falhou",
        rules=(
            ReplyRule(name="greeting", keywords=("oi", "olá"), reply="Olá!"),
            ReplyRule(name="delivery", keywords=("entrega",), reply="Entregamos em 24-48h"),
        ),
        default_reply="Como posso ajudar?",
    )


class TestLoadAutoReplyTable:
    def test_bundled_table_has_handoff_keywords(self):
        table = load_auto_reply_table()
        assert "atendente" in table.handoff_keywords
        assert "humano" in table.handoff_keywords

    def test_bundled_table_has_messages(self):
        table = load_auto_reply_table()
        assert "atendente" in table.ai_failure_message
        assert table.handoff_message
        assert table.default_reply

    def test_rules_keep_file_order(self):
        table = load_auto_reply_table()
        assert table.rules[0].name == "greeting"

    def test_missing_file_gives_empty_table(self, tmp_path):
        table = load_auto_reply_table.__wrapped__(tmp_path / "missing.yaml")
        assert table.rules == ()
        assert table.handoff_keywords == ()


class TestMatchRule:
    def test_first_matching_rule_wins(self):
        rule = match_rule("Oi, qual o prazo de entrega?", _table())
        assert rule.name == "greeting"

    def test_case_insensitive(self):
        assert match_rule("ENTREGA amanhã?", _table()).name == "delivery"

    def test_no_match(self):
        assert match_rule("xyz", _table()) is None


class TestRuleBasedReply:
    def test_matched_reply(self):
        assert rule_based_reply("entrega", _table()) == "Entregamos em 24-48h"

    def test_default_reply(self):
        assert rule_based_reply("xyz", _table()) == "Como posso ajudar?"

    def test_bundled_greeting(self):
        reply = rule_based_reply("Oi, quero picanha")
        assert reply.startswith("Olá!")
