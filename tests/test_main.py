import unittest

import telebot
from telebot import types

from main import register_handlers

ADMIN_ID = 1
USER_ID = 555


class _Dispenser:
    def __init__(self):
        self.calls = []

    def redeem(self, chat_id, payload):
        self.calls.append(("redeem", chat_id, payload))
        return None

    def add_item(self, user_id, text):
        self.calls.append(("add_item", user_id, text))
        return "added"

    def delete_item(self, user_id, text):
        self.calls.append(("delete_item", user_id, text))
        return "deleted"

    def list_items(self, user_id):
        self.calls.append(("list_items", user_id))
        return "list"

    def stats(self, user_id):
        self.calls.append(("stats", user_id))
        return "stats"

    def help(self, user_id):
        self.calls.append(("help", user_id))
        return "help"

    def fallback(self, user_id):
        self.calls.append(("fallback", user_id))
        return "Use the app only."


def _message(text, user_id=USER_ID, message_id=1):
    return types.Message.de_json({
        "message_id": message_id,
        "date": 0,
        "chat": {"id": user_id, "type": "private"},
        "from": {"id": user_id, "is_bot": False, "first_name": "U"},
        "text": text,
    })


class TestHandlers(unittest.TestCase):
    def setUp(self):
        self.bot = telebot.TeleBot("123:abc", threaded=False)
        self.replies = []
        self.bot.send_message = lambda chat_id, text, **kw: self.replies.append((chat_id, text))
        self.dispenser = _Dispenser()
        register_handlers(self.bot, self.dispenser)

    def _send(self, text, user_id=USER_ID):
        self.bot.process_new_messages([_message(text, user_id)])

    def test_start_routes_payload_to_redeem(self):
        self._send("/start demo")
        self.assertEqual(self.dispenser.calls, [("redeem", USER_ID, "demo")])
        self.assertEqual(self.replies, [])

    def test_admin_commands(self):
        self._send("/additem a | b | c", ADMIN_ID)
        self._send("/delmovie a", ADMIN_ID)
        self._send("/listitems", ADMIN_ID)
        self._send("/stats", ADMIN_ID)
        self._send("/help", ADMIN_ID)
        self.assertEqual([c[0] for c in self.dispenser.calls], ["add_item", "delete_item", "list_items", "stats", "help"])
        self.assertEqual([r[1] for r in self.replies], ["added", "deleted", "list", "stats", "help"])

    def test_other_text_goes_to_fallback(self):
        self._send("hello there")
        self.assertEqual(self.dispenser.calls, [("fallback", USER_ID)])
        self.assertEqual(self.replies, [(USER_ID, "Use the app only.")])


if __name__ == "__main__":
    unittest.main()
