# clearhead/main.py

"""
Main entry point for ClearHead.

Wires the journal store, Google speech services, chat client and audio
manager together and runs one activity from the command line:

    clearhead coach     spoken conversation with the journaling coach
    clearhead note      record a single voice note
    clearhead write     type an entry, optionally answering a journaling prompt
    clearhead insights  pattern insights over recent entries
    clearhead reflect   look-back and milestone reflection prompts
"""

import argparse
import logging
import sys
from typing import Optional

from .components.conversation_audio_manager import ConversationAudioManager
from .components.llm import ChatCompletionClient
from .components.ui_interface import CoachListener
from .stores.journal_store import JournalStore
from .utils.config_loader import (
    get_chat_config,
    get_data_dir,
    get_external_timeout,
    load_global_config,
    validate_required_config,
)
from .utils.storage import JsonFileStorage

logger = logging.getLogger(__name__)


class ConsoleCoachListener(CoachListener):
    """Prints coach lines and phase prompts to the terminal."""

    def on_coach_text(self, text: str):
        print(f"\nCoach: {text}")

    def on_entry_saved(self, entry):
        print(f"\n✓ Saved entry {entry.id} ({entry.voice_duration or 0}s)")


class ClearHeadApp:
    """
    Builds the shared services once and runs activities on top of them.
    """

    def __init__(self):
        self.global_config = load_global_config()
        self.audio_settings = self.global_config.get("audio_settings", {})
        self.timeout = get_external_timeout(self.global_config)

        self.storage = JsonFileStorage(get_data_dir())
        self.store = JournalStore(self.storage)
        self.chat_client: Optional[ChatCompletionClient] = None
        self.audio_manager: Optional[ConversationAudioManager] = None
        self.stt_service = None
        self.tts_service = None

        logger.info("ClearHeadApp initialized")

    def initialize(self, with_speech: bool) -> bool:
        """Hydrate the store and create the external service clients."""
        self.store.hydrate()

        chat = get_chat_config()
        if chat["base_url"]:
            self.chat_client = ChatCompletionClient(
                base_url=chat["base_url"],
                api_key=chat["api_key"],
                model=chat["model"],
                path=chat["path"],
                timeout=self.timeout,
            )
            logger.info(f"✓ Chat client ready ({chat['base_url']})")

        if not with_speech:
            return True

        missing = validate_required_config()
        if missing:
            logger.error(f"Missing required environment variables: {missing}")
            return False

        try:
            # Speech clients pull in the Google SDKs; only load them when needed
            from .components.stt import GoogleSTTService
            from .components.tts import GoogleTTSClient

            self.stt_service = GoogleSTTService(
                language=self.audio_settings.get("stt_language_code", "en-US"),
                sample_rate=self.audio_settings.get("stt_sample_rate", 16000),
                timeout=self.timeout,
            )
            self.tts_service = GoogleTTSClient(
                voice_name=self.audio_settings.get("tts_voice_name", "en-US-Chirp3-HD-Kore"),
                language_code=self.audio_settings.get("tts_language_code", "en-US"),
                sample_rate_hertz=self.audio_settings.get("tts_sample_rate_hertz", 24000),
                timeout=self.timeout,
            )
            self.audio_manager = ConversationAudioManager(audio_config=self.audio_settings)
        except Exception as e:
            logger.error(f"Failed to initialize speech services: {e}", exc_info=True)
            return False

        logger.info("✓ Speech services initialized")
        return True

    def run_coach(self) -> int:
        from .activities.voice_coach import CoachPhase, VoiceCoachSession

        session = VoiceCoachSession(
            store=self.store,
            audio_manager=self.audio_manager,
            stt_service=self.stt_service,
            tts_service=self.tts_service,
            chat_client=self.chat_client,
            listener=ConsoleCoachListener(),
        )
        try:
            session.start()
            while not session.is_ended:
                if session.phase == CoachPhase.LISTENING:
                    input("\n[Enter] to start speaking ")
                    session.start_recording()
                    input("[Enter] when you're done ")
                    if session.stop_recording() is None and not session.is_ended:
                        print("Sorry, I didn't catch that. Let's try again.")
                elif session.phase == CoachPhase.ASK_CONTINUE:
                    choice = input("\n[Enter] to keep going, 'd' to finish: ").strip().lower()
                    if choice == "d":
                        session.finish()
                    else:
                        session.continue_session()
                        input("[Enter] when you're done ")
                        if session.stop_recording() is None and not session.is_ended:
                            print("Sorry, I didn't catch that. Let's try again.")
        except (KeyboardInterrupt, EOFError):
            logger.info("Coach session interrupted by user")
        finally:
            session.close()
        return 0

    def run_note(self) -> int:
        from .activities.voice_note import VoiceNoteActivity

        activity = VoiceNoteActivity(
            store=self.store,
            audio_manager=self.audio_manager,
            stt_service=self.stt_service,
            tts_service=self.tts_service,
            chat_client=self.chat_client,
        )
        try:
            input("[Enter] to start recording ")
            activity.start_recording()
            input("[Enter] to stop ")
            entry = activity.save_note()
            print(f"\n{entry.content}\n")

            if activity.follow_up_question:
                print(f"Coach: {activity.follow_up_question}")
                choice = input("[Enter] to answer, 's' to skip: ").strip().lower()
                if choice == "s":
                    activity.skip_follow_up()
                else:
                    activity.respond_to_follow_up()
                    input("[Enter] to stop ")
                    if activity.save_follow_up():
                        print("✓ Added your answer to the entry")
        except (KeyboardInterrupt, EOFError):
            logger.info("Voice note interrupted by user")
        finally:
            activity.close()
        return 0

    def run_write(self, with_prompt: bool) -> int:
        from .components.prompt_library import get_random_prompt
        from .stores.journal_store import EmptyEntryError, EntryType

        prompt = None
        if with_prompt:
            prompt, category = get_random_prompt()
            print(f"\n[{category.name}] {prompt}")

        print("Write your entry. Finish with an empty line.")
        lines = []
        try:
            while True:
                line = input()
                if not line:
                    break
                lines.append(line)
        except (KeyboardInterrupt, EOFError):
            logger.info("Entry input ended")

        try:
            entry = self.store.add_entry(
                "\n".join(lines),
                entry_type=EntryType.PROMPTED if prompt else EntryType.TEXT,
                prompt_used=prompt,
            )
        except EmptyEntryError:
            print("Nothing written, no entry saved.")
            return 0

        print(f"\n✓ Saved entry {entry.id} (tags: {', '.join(entry.tags) or 'none'}, {entry.sentiment})")
        print(f"Streak: {self.store.streak} day(s)")
        return 0

    def run_insights(self) -> int:
        from .analysis.insights import PatternInsightAnalyzer

        analyzer = PatternInsightAnalyzer(self.storage, self.chat_client)
        insights = analyzer.analyze(self.store.entries)
        if not insights:
            print("No insights yet. Keep journaling!")
            return 0
        for insight in insights:
            print(f"[{insight.icon}] {insight.title}\n    {insight.description}")
        return 0

    def run_reflect(self) -> int:
        from .analysis.reflection_prompts import ReflectionPromptGenerator

        prompts = ReflectionPromptGenerator(self.chat_client).generate(self.store.entries)
        if not prompts:
            print("No reflection prompts right now.")
            return 0
        for prompt in prompts:
            print(f"- {prompt.prompt}")
        return 0

    def stop(self):
        if self.audio_manager:
            self.audio_manager.release_all()
        self.store.close()
        logger.info("✅ ClearHead stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clearhead", description="ClearHead voice journaling")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("coach", help="talk it through with the journaling coach")
    sub.add_parser("note", help="record a single voice note")
    write = sub.add_parser("write", help="type an entry")
    write.add_argument("-p", "--prompt", action="store_true", help="answer a random journaling prompt")
    sub.add_parser("insights", help="show patterns across recent entries")
    sub.add_parser("reflect", help="show reflection prompts")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s | %(levelname)-8s | %(name)-15s | %(message)s',
        datefmt='%H:%M:%S'
    )

    app = ClearHeadApp()
    needs_speech = args.command in ("coach", "note")
    try:
        if not app.initialize(with_speech=needs_speech):
            logger.error("Initialization failed")
            return 1

        handlers = {
            "coach": app.run_coach,
            "note": app.run_note,
            "write": lambda: app.run_write(args.prompt),
            "insights": app.run_insights,
            "reflect": app.run_reflect,
        }
        return handlers[args.command]()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received; shutting down…")
        return 0
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1
    finally:
        app.stop()


if __name__ == "__main__":
    sys.exit(main())
