"""CLI interface for YieldPilot."""

import uuid
from pathlib import Path

from groq import AsyncGroq

from .actions import (
    ActionRegistry,
    ChangeUserWalletAction,
    CreateMultisigAction,
    GetUserWalletAction,
    Message,
    ProposePlanAction,
    ProposeTransactionAction,
    Reply,
)
from .chain import ChainClient
from .config import AgentSettings, load_config
from .extractors import AprExtractor, InvestmentCriteriaExtractor, WalletExtractor
from .llm import GroqLLMClient, LLMClient
from .logging import configure_logger, get_logger
from .markets import AaveMarketProvider, PriceFeedProvider, format_markets, format_prices
from .memory import MemoryStore
from .runtime import AgentRuntime
from .services import CustodyClient, ExecutorClient

BANNER = """
╔══════════════════════════════════════════╗
║          YieldPilot v0.1.0               ║
║    Conversational Aave lending agent     ║
╚══════════════════════════════════════════╝

Commands:
  /exit, /quit  - Exit the CLI
  /reset        - Start a new conversation room
  /markets      - Show current Aave market data
  /prices       - Show oracle prices
  /state        - Show what the agent knows about this room
  /help         - Show this help

Type your message and press Enter.
"""


def build_registry(
    settings: AgentSettings,
    llm: LLMClient,
    chain: ChainClient,
    custody: CustodyClient,
    executor: ExecutorClient | None = None,
) -> ActionRegistry:
    """Register the five actions in guard priority order."""
    wallet_extractor = WalletExtractor(llm)
    markets = AaveMarketProvider(chain, settings.pool_address)
    prices = PriceFeedProvider(chain)

    registry = ActionRegistry()
    registry.register(ChangeUserWalletAction(wallet_extractor))
    registry.register(GetUserWalletAction(wallet_extractor))
    registry.register(CreateMultisigAction(custody, chain, settings.agent_id))
    registry.register(ProposeTransactionAction(settings, custody, chain, prices, executor=executor))
    registry.register(
        ProposePlanAction(InvestmentCriteriaExtractor(llm), markets, AprExtractor(llm))
    )
    return registry


class CLI:
    """Interactive command-line interface for YieldPilot."""

    def __init__(self, settings: AgentSettings, db_path: Path | None = None) -> None:
        self.settings = settings
        self.logger = get_logger()

        self.memory_store = MemoryStore(db_path or settings.db_path)
        self.memory_store.init_db()

        llm = GroqLLMClient(
            AsyncGroq(api_key=settings.groq_api_key),
            small_model=settings.model_small,
            large_model=settings.model_large,
            timeout=settings.request_timeout,
        )
        self.chain = ChainClient(
            settings.rpc_url, private_key=settings.private_key, timeout=settings.request_timeout
        )
        custody = CustodyClient(
            settings.custody_url, timeout=settings.request_timeout, event_logger=self.logger
        )
        executor = ExecutorClient(
            settings.executor_url, timeout=settings.request_timeout, event_logger=self.logger
        )

        registry = build_registry(settings, llm, self.chain, custody, executor)
        self.runtime = AgentRuntime(
            registry,
            self.memory_store,
            recent_messages=settings.recent_messages,
            event_logger=self.logger,
        )
        self.room_id = self._new_room_id()
        self.user_id = "cli-user"

    def _new_room_id(self) -> str:
        """Generate a new room ID."""
        return f"cli-{uuid.uuid4().hex[:8]}"

    async def _print_reply(self, reply: Reply) -> None:
        print("\n" + "─" * 40)
        print(reply.text)
        if "transaction" in reply.fields:
            tx = reply.fields["transaction"]
            print(f"\nto:    {tx['to']}\nvalue: {tx['value']}\ndata:  {tx['data']}")
        print("─" * 40)

    async def _process_message(self, text: str) -> None:
        """Process a user message through the runtime."""
        message = Message(
            id=uuid.uuid4().hex,
            room_id=self.room_id,
            user_id=self.user_id,
            agent_id=self.settings.agent_id,
            text=text,
        )
        try:
            result = await self.runtime.process(message, callback=self._print_reply)
        except Exception as e:
            print(f"\n❌ Error: {e}")
            self.logger.log("error", room_id=self.room_id, error=str(e))
            return

        if result.action is None:
            print(
                "\nI can help you save a wallet, propose an Aave plan, set up a "
                "multisig and prepare the deposit. Try 'I want to invest 500 in USDC'."
            )

    def _show_state(self) -> None:
        state = self.runtime.room_state(self.room_id)
        print(f"\nRoom:     {self.room_id}")
        print(f"Wallet:   {state.wallet or '-'}")
        print(f"Multisig: {state.multisig or '-'}")
        if state.plan:
            print(f"Plan:     {state.plan['allocationAmount']} USD in {state.plan['chosenAsset']}")
        else:
            print("Plan:     -")

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            self.logger.log("session_end", room_id=self.room_id)
            return False

        if cmd == "/reset":
            old_room_id = self.room_id
            self.room_id = self._new_room_id()
            self.logger.log("session_reset", room_id=self.room_id, old_room_id=old_room_id)
            print(f"\n✓ New conversation started. Room: {self.room_id}")
            return True

        if cmd == "/markets":
            provider = AaveMarketProvider(self.chain, self.settings.pool_address)
            print("\n" + format_markets(await provider.get_markets()))
            return True

        if cmd == "/prices":
            print("\n" + format_prices(await PriceFeedProvider(self.chain).get_prices()))
            return True

        if cmd == "/state":
            self._show_state()
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        return True  # Unknown command, continue

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        print(f"Room: {self.room_id}\n")
        self.logger.log("session_start", room_id=self.room_id)

        try:
            while True:
                try:
                    user_input = input("you> ").strip()

                    if not user_input:
                        continue

                    if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                        if not await self._handle_command(user_input):
                            break
                        continue

                    await self._process_message(user_input)

                except KeyboardInterrupt:
                    print("\n\n⚡ Interrupted")
                    try:
                        confirm = input("Exit? (y/n): ").strip().lower()
                        if confirm in ("y", "yes"):
                            print("👋 Goodbye!")
                            self.logger.log("session_interrupt", room_id=self.room_id)
                            break
                    except (KeyboardInterrupt, EOFError):
                        print("\n👋 Goodbye!")
                        break

                except EOFError:
                    print("\n👋 Goodbye!")
                    break
        finally:
            self.memory_store.close()


async def run_cli(config_path: Path | None = None) -> None:
    """Run the CLI with configuration from the environment and config file."""
    configure_logger()

    settings = load_config(AgentSettings.from_env(), config_path)
    if not settings.groq_api_key:
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    cli = CLI(settings)
    await cli.run()
