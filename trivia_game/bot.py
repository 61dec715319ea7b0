import discord
from discord import app_commands
from discord.ext import commands
import logging
from typing import Dict, Optional
import os

from .config_manager import ConfigManager
from .game_session import GameSession
from .models import ResultsSummary
from .question_source import DEFAULT_API_URL, FetchError, OpenTriviaQuestionSource
from .quiz_controller import QuizController, SessionListener

logger = logging.getLogger(__name__)

# Discord rejects button labels longer than 80 characters
MAX_BUTTON_LABEL = 80


def _truncate(text: str, limit: int = MAX_BUTTON_LABEL) -> str:
    return text if len(text) <= limit else text[:limit - 1] + "…"


def build_question_embed(session: GameSession) -> discord.Embed:
    """Render the active or reviewed question of a session."""
    question = session.current_question
    remaining_time = session.remaining_time

    # Change color based on remaining time
    if session.is_answer_correct is not None:
        color = 0x00ff00 if session.is_answer_correct else 0xff0000
    elif remaining_time > 10:
        color = 0x00ff00  # Green
    elif remaining_time > 5:
        color = 0xff6600  # Orange
    else:
        color = 0xff0000  # Red

    embed = discord.Embed(
        title=f"🎯 Question {session.current_index + 1}/{session.total_questions}",
        description=question.text if question else "",
        color=color
    )
    embed.add_field(
        name="⏱️ Time Remaining",
        value=f"{remaining_time} sec",
        inline=True
    )
    embed.add_field(
        name="🏆 Score",
        value=str(session.score),
        inline=True
    )

    if session.selected_answer is not None:
        embed.add_field(
            name="👉 Selected",
            value=session.selected_answer,
            inline=False
        )

    if session.is_answer_correct is True:
        embed.add_field(name="✅ Correct!", value="Nice one.", inline=False)
    elif session.is_answer_correct is False:
        embed.add_field(
            name="❌ Incorrect :(",
            value=f"The answer was **{question.correct_answer}**",
            inline=False
        )
    else:
        embed.set_footer(text="Pick an answer and press Submit before time runs out")

    return embed


def build_results_embed(summary: ResultsSummary) -> discord.Embed:
    embed = discord.Embed(
        title="🎉 Game Over!",
        description=f"Final Score: **{summary.score}/{summary.total}**",
        color=0x6699ff
    )
    embed.set_footer(text="Press Play Again for a new set of questions")
    return embed


def build_fetch_error_embed(error: FetchError) -> discord.Embed:
    embed = discord.Embed(
        title="❌ No Questions Available",
        description=str(error),
        color=0xff0000
    )
    embed.set_footer(text="Press Retry to try again")
    return embed


class AnswerView(discord.ui.View):
    """Answer buttons plus a Submit button for one question."""

    def __init__(self, controller: QuizController, channel_id: int, session: GameSession):
        super().__init__(timeout=None)
        self.controller = controller
        self.channel_id = channel_id
        self.session = session
        self.generation = session.generation
        self.question_index = session.current_index
        self.answer_buttons: Dict[str, discord.ui.Button] = {}

        for answer in session.current_question.answers:
            button = discord.ui.Button(label=_truncate(answer), style=discord.ButtonStyle.secondary)
            button.callback = self._make_select_callback(answer)
            self.answer_buttons[answer] = button
            self.add_item(button)

        self.submit_button = discord.ui.Button(label="Submit Answer", style=discord.ButtonStyle.primary)
        self.submit_button.callback = self._submit
        self.add_item(self.submit_button)

    @property
    def is_current(self) -> bool:
        """Whether the session is still on the question this view was built for."""
        return self.session.generation == self.generation and self.session.current_index == self.question_index

    def refresh(self) -> None:
        """Sync button styles with the session's selection and lock state."""
        locked = self.session.is_answer_correct is not None
        correct_answer = self.session.current_question.correct_answer
        for answer, button in self.answer_buttons.items():
            if locked and answer == correct_answer:
                button.style = discord.ButtonStyle.success
            elif answer == self.session.selected_answer:
                button.style = discord.ButtonStyle.danger if locked else discord.ButtonStyle.success
            else:
                button.style = discord.ButtonStyle.secondary
            button.disabled = locked
        self.submit_button.disabled = locked

    def _make_select_callback(self, answer: str):
        async def select_callback(interaction: discord.Interaction):
            if not self.is_current or not self.controller.select_answer(self.channel_id, answer):
                await interaction.response.send_message("⏰ This question is already closed.", ephemeral=True)
                return
            self.refresh()
            await interaction.response.edit_message(embed=build_question_embed(self.session), view=self)
        return select_callback

    async def _submit(self, interaction: discord.Interaction):
        await interaction.response.defer()
        result = await self.controller.submit_answer(self.channel_id) if self.is_current else None
        if result is None:
            await interaction.followup.send("⏰ This question is already closed.", ephemeral=True)


class RestartView(discord.ui.View):
    """Single button that restarts the channel's game."""

    def __init__(self, controller: QuizController, channel_id: int, label: str = "Play Again"):
        super().__init__(timeout=None)
        self.controller = controller
        self.channel_id = channel_id
        button = discord.ui.Button(label=label, style=discord.ButtonStyle.primary)
        button.callback = self._restart
        self.add_item(button)

    async def _restart(self, interaction: discord.Interaction):
        await interaction.response.defer()
        await self.controller.restart_game(self.channel_id)


class DiscordPresenter(SessionListener):
    """Renders game sessions as Discord messages."""

    # Countdown edits are throttled to stay within Discord rate limits
    TICK_UPDATE_INTERVAL = 5
    TICK_UPDATE_FINAL_SECONDS = 5

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._messages: Dict[int, discord.Message] = {}
        self._views: Dict[int, AnswerView] = {}

    @property
    def controller(self) -> QuizController:
        return self.bot.quiz_controller

    async def _get_channel(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id)
        return channel

    async def on_loading(self, channel_id: int, session: GameSession) -> None:
        self._messages.pop(channel_id, None)
        view = self._views.pop(channel_id, None)
        if view is not None:
            view.stop()

    async def on_question(self, channel_id: int, session: GameSession) -> None:
        view = AnswerView(self.controller, channel_id, session)
        try:
            channel = await self._get_channel(channel_id)
            message = await channel.send(embed=build_question_embed(session), view=view)
        except discord.HTTPException as e:
            view.stop()
            logger.error(f"Failed to present question in channel {channel_id}: {e}")
            return

        if not view.is_current:
            # The game was restarted while the message was being sent
            view.stop()
            logger.info(f"Dropping stale question view in channel {channel_id}")
            return

        previous = self._views.get(channel_id)
        if previous is not None:
            previous.stop()
        self._messages[channel_id] = message
        self._views[channel_id] = view

    async def on_tick(self, channel_id: int, session: GameSession) -> None:
        remaining = session.remaining_time
        if remaining > self.TICK_UPDATE_FINAL_SECONDS and remaining % self.TICK_UPDATE_INTERVAL != 0:
            return
        message = self._messages.get(channel_id)
        if message is None:
            return
        try:
            await message.edit(embed=build_question_embed(session))
        except discord.HTTPException as e:
            # Log error but don't raise to avoid breaking timer
            logger.error(f"Failed to update timer in channel {channel_id}: {e}")

    async def on_answer_reviewed(self, channel_id: int, session: GameSession) -> None:
        message = self._messages.get(channel_id)
        view = self._views.get(channel_id)
        if message is None:
            return
        if view is not None:
            view.refresh()
            view.stop()
        try:
            await message.edit(embed=build_question_embed(session), view=view)
        except discord.HTTPException as e:
            logger.error(f"Failed to show answer feedback in channel {channel_id}: {e}")

    async def on_game_over(self, channel_id: int, session: GameSession, summary: ResultsSummary) -> None:
        self._messages.pop(channel_id, None)
        self._views.pop(channel_id, None)
        try:
            channel = await self._get_channel(channel_id)
            await channel.send(embed=build_results_embed(summary), view=RestartView(self.controller, channel_id))
        except discord.HTTPException as e:
            logger.error(f"Failed to send results in channel {channel_id}: {e}")

    async def on_fetch_failed(self, channel_id: int, session: GameSession, error: FetchError) -> None:
        try:
            channel = await self._get_channel(channel_id)
            await channel.send(
                embed=build_fetch_error_embed(error),
                view=RestartView(self.controller, channel_id, label="Retry")
            )
        except discord.HTTPException as e:
            logger.error(f"Failed to report fetch error in channel {channel_id}: {e}")


DIFFICULTY_CHOICES = [
    app_commands.Choice(name="Any", value="any"),
    app_commands.Choice(name="Easy", value="easy"),
    app_commands.Choice(name="Medium", value="medium"),
    app_commands.Choice(name="Hard", value="hard"),
]

QUESTION_TYPE_CHOICES = [
    app_commands.Choice(name="Multiple Choice", value="multiple"),
    app_commands.Choice(name="True/False", value="boolean"),
]


class TriviaBot(commands.Bot):
    """Discord bot hosting one trivia game per channel"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager: Optional[ConfigManager] = None
        self.question_source: Optional[OpenTriviaQuestionSource] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            trivia_config = self.app_config.get('trivia', {})

            self.config_manager = ConfigManager()
            rejected = self.config_manager.apply_settings(trivia_config)
            for message in rejected:
                logger.warning(f"Configuration: {message}")

            self.question_source = OpenTriviaQuestionSource(
                api_url=trivia_config.get('api_url', DEFAULT_API_URL),
                request_timeout=trivia_config.get('request_timeout', 10.0)
            )
            self.quiz_controller = QuizController(
                self.question_source,
                self.config_manager,
                listener=DiscordPresenter(self),
                review_delay=trivia_config.get('review_delay', 1.0)
            )

            self.setup_commands()
            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="trivia", description="Start a trivia game in this channel")
        @app_commands.describe(
            questions="Number of questions",
            difficulty="Question difficulty",
            question_type="Multiple choice or true/false",
            timer="Seconds per question",
            category="Open Trivia DB category id (0 for any)"
        )
        @app_commands.choices(difficulty=DIFFICULTY_CHOICES, question_type=QUESTION_TYPE_CHOICES)
        async def trivia_command(
            interaction: discord.Interaction,
            questions: Optional[int] = None,
            difficulty: Optional[app_commands.Choice[str]] = None,
            question_type: Optional[app_commands.Choice[str]] = None,
            timer: Optional[int] = None,
            category: Optional[int] = None
        ):
            await self.handle_trivia(
                interaction,
                questions=questions,
                difficulty=difficulty.value if difficulty else None,
                question_type=question_type.value if question_type else None,
                timer=timer,
                category=category
            )

        @self.tree.command(name="restart", description="Restart the game in this channel with new questions")
        async def restart_command(interaction: discord.Interaction):
            await self.handle_restart(interaction)

        @self.tree.command(name="stop", description="Stop the game in this channel")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show the current game status")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        if self.quiz_controller is not None:
            await self.quiz_controller.shutdown()
        await super().close()

    async def handle_help(self, interaction: discord.Interaction):
        embed = discord.Embed(
            title="🧠 Trivia Bot Help",
            description="Answer questions from the Open Trivia Database before the timer runs out.",
            color=0x6699ff
        )
        embed.add_field(
            name="🎮 Game",
            value=(
                "`/trivia` - Start a game (optional: questions, difficulty, type, timer, category)\n"
                "`/restart` - Restart with fresh questions\n"
                "`/stop` - End the game\n"
                "`/status` - Show progress and score"
            ),
            inline=False
        )
        embed.add_field(
            name="⚙️ Defaults",
            value=self.config_manager.get_settings_summary(),
            inline=False
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_trivia(
        self,
        interaction: discord.Interaction,
        questions: Optional[int] = None,
        difficulty: Optional[str] = None,
        question_type: Optional[str] = None,
        timer: Optional[int] = None,
        category: Optional[int] = None
    ):
        """Handle /trivia command"""
        try:
            result = self.config_manager.build_configuration(
                question_count=questions,
                category=category,
                difficulty=difficulty,
                question_type=question_type,
                timer_duration=timer
            )
            if not result['success']:
                await self.send_error_response(interaction, result['user_message'], "❌ Invalid Settings")
                return

            configuration = result['configuration']
            embed = discord.Embed(
                title="🎯 Trivia Starting!",
                description="Loading questions...",
                color=0x00ff00
            )
            embed.add_field(
                name="📊 Game Details",
                value=(
                    f"Questions: {configuration.question_count}\n"
                    f"Difficulty: {configuration.difficulty.value}\n"
                    f"Timer: {configuration.timer_duration} seconds per question"
                ),
                inline=False
            )
            await interaction.response.send_message(embed=embed)

            await self.quiz_controller.start_game(interaction.channel_id, configuration)

        except discord.HTTPException as e:
            logger.error(f"Discord error in trivia command: {e}")
        except Exception as e:
            logger.error(f"Error in trivia command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to start trivia", "❌ Start Error")

    async def handle_restart(self, interaction: discord.Interaction):
        """Handle /restart command"""
        channel_id = interaction.channel_id
        if self.quiz_controller.get_session(channel_id) is None:
            await self.send_error_response(interaction, "No game in this channel. Start one with `/trivia`.")
            return
        try:
            await interaction.response.send_message("🔄 Restarting with new questions...")
            await self.quiz_controller.restart_game(channel_id)
        except discord.HTTPException as e:
            logger.error(f"Discord error in restart command: {e}")
        except Exception as e:
            logger.error(f"Error in restart command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to restart the game", "❌ Restart Error")

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        try:
            if self.quiz_controller.stop_game(interaction.channel_id):
                await interaction.response.send_message("🛑 Game stopped.")
            else:
                await self.send_error_response(interaction, "No game in this channel.")
        except discord.HTTPException as e:
            logger.error(f"Discord error in stop command: {e}")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            progress = self.quiz_controller.get_session_progress(interaction.channel_id)
            if progress is None:
                await self.send_error_response(interaction, "No game in this channel.", "ℹ️ No Game")
                return

            embed = discord.Embed(title="📊 Trivia Status", color=0x6699ff)
            embed.add_field(name="State", value=progress['state'], inline=True)
            embed.add_field(
                name="Question",
                value=f"{progress['current_question']}/{progress['total_questions']}",
                inline=True
            )
            embed.add_field(name="Score", value=str(progress['score']), inline=True)
            embed.add_field(name="Time Remaining", value=f"{progress['remaining_time']} sec", inline=True)
            await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Discord error in status command: {e}")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    # Fall back to environment variable if no token provided
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = TriviaBot(config)

    try:
        logger.info("Starting Discord Trivia Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
