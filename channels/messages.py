"""
User-facing texts.

Bilingual (Russian / English) where the participant sees them directly.
"""

THINKING_TEXT = "🤔 Thinking..."

THROTTLED_TEXT = "⚠️ You're sending too many requests. Please wait a moment before trying again."

EMPTY_REPLY_TEXT = "Sorry, I had trouble processing your message. Please try again."

HANDLER_ERROR_TEXT = "Something went wrong. Please try again later."

BACKEND_UNAUTHORIZED_TEXT = "The bot administrator needs to check the Anthropic API key configuration."

BACKEND_FAILURE_TEXT = "Sorry, I encountered an error processing your request. Please try again later."

RESET_TEXT = "🔄 Диалог сброшен. Можете начать новую беседу! / Chat reset. You can start a new conversation!"

REBOOT_TEXT = "🔄 Memory Reboot: Предыдущий контекст разговора сброшен для обеспечения безопасности."

WELCOME_RU = """🧞 Wish Granter - Исполнитель Желаний

Помогаю находить и формулировать истинные желания через AI-диалог.

Что умею:
• Выявляю настоящие цели через беседу
• Превращаю мечты в конкретные планы
• Разбиваю большие желания на шаги
• Нахожу истинные мотивы

Как работает:
1. Расскажите о желаниях
2. Отвечу уточняющими вопросами
3. Найдем истинное желание
4. Составим план достижения"""

WELCOME_EN = """🧞 Wish Granter

I help discover and formulate true wishes through AI dialogue.

What I do:
• Uncover real goals through conversation
• Transform dreams into concrete plans
• Break down big wishes into steps
• Find true motivations

How it works:
1. Tell me about your wishes
2. I'll ask clarifying questions
3. We'll find your true wish
4. We'll create an achievement plan"""

HELP_TEXT = """🤖 Wish Granter - Исполнитель Желаний

Доступные команды:
• /start - Показать приветствие
• /reset - Сбросить диалог и начать новый
• /who - Проверить безопасность соединения
• /myid - Получить ваш Telegram ID
• /help - Показать это сообщение

🔒 Безопасность:
• Все сообщения шифруются уникальным ключом при старте бота
• Используйте /who чтобы проверить безопасность в реальном времени

Просто напишите сообщение, чтобы начать диалог!"""

# -- Operator relay ----------------------------------------------------------

RELAY_DENIED_TEXT = "❌ You don't have permission to use this command."
RELAY_USAGE_TEXT = "❌ Invalid format. Use: /send userId message"
RELAY_FAILED_TEXT = "❌ Failed to send message. Please try again later."


def relay_forward_text(body: str) -> str:
    return f"📩 Message from admin:\n\n{body}"


def relay_confirm_text(target: str) -> str:
    return f"✅ Message sent to user {target}"


# -- Superwish invitation ----------------------------------------------------


def superwish_invitation_ru(link: str) -> str:
    return f"""🌟 **Поздравляем!** 🌟

Ваше желание особенное! Приглашаем вас в наш эксклюзивный канал, где вы найдете дополнительные возможности и поддержку для достижения ваших целей.

👇 **Присоединяйтесь к нашему приватному каналу:**
{link}

💫 Здесь вас ждут эксклюзивные материалы и персональная поддержка!"""


def superwish_invitation_en(link: str) -> str:
    return f"""🌟 **Congratulations!** 🌟

Your wish is special! We invite you to our exclusive channel where you will find additional opportunities and support to achieve your goals.

👇 **Join our private channel:**
{link}

💫 Here you will find exclusive materials and personal support!"""


# -- Status commands ---------------------------------------------------------


def myid_text(user_id: str, username: str | None) -> str:
    return f"Your Telegram ID: `{user_id}`\nUsername: @{username or 'none'}\n\n"


def status_text(uptime_s: int, threads: int, memory_mb: int) -> str:
    return f"""🔒 Статус процесса:
• Время работы: {uptime_s}с
• Активных потоков: {threads}
• Память: {memory_mb}MB

Process Status:
• Uptime: {uptime_s}s
• Active threads: {threads}
• Memory: {memory_mb}MB"""
