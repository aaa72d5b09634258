TEXTS = {
    # пользователи
    "open_from_app": "Open this item from the app.",
    "not_available": "This item is not available.",
    "send_failed": "Failed to deliver the item. Please try again later.",
    "generic_error": "Something went wrong. Please try again later.",
    "use_app_only": "Use the app only.",
    "caption": "{title}\n\n⏳ This message will be deleted in {hours} h. Save it if you need it.",

    # админка
    "add_usage": (
        "Usage:\n"
        "/additem KEY | Title | MEDIA | hours(optional)\n\n"
        "MEDIA is a file id, a message id in the source channel "
        "or a t.me link to a channel post."
    ),
    "add_invalid": "❌ {error}\n\n{usage}",
    "add_resolve_failed": "❌ Could not read media from the channel post. Wrong message id?",
    "add_no_channel": "❌ CHANNEL_ID is not configured, use a file id or a t.me post link.",
    "item_added": "✔ Item added: {title} ({hours} h)\n\n🔗 Link:\n{link}",
    "item_added_no_link": "✔ Item added: {title} ({hours} h)\n\nKey: {key}",
    "del_usage": "Usage:\n/delitem KEY",
    "item_deleted": "🗑 Item {key} deleted.",
    "item_missing": "Item {key} not found, nothing to delete.",
    "list_empty": "No items.",
    "list_row": "• {key} — {title} ({hours} h)",
    "stats": (
        "📊 Stats:\n"
        "• Items: {items}\n"
        "• Pending deliveries: {pending}\n"
        "• Scheduled timers: {timers}"
    ),
    "admin_help": (
        "Admin commands:\n"
        "/additem KEY | Title | MEDIA | hours(optional)\n"
        "/delitem KEY\n"
        "/listitems\n"
        "/stats"
    ),
}
