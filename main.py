"""
PitchPerfect - Console client

Paste a job description, get it analyzed, run a voice (or typed) mock
interview against it and read the scored feedback report.
`python main.py --serve` starts the HTTP service instead.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from loguru import logger

from config import config
from pitchperfect.audio import AudioCapture, AudioPlaybackQueue, AudioPlayer
from pitchperfect.clients import ChatGPTClient, SpeechSynthesisClient, TranscriptionClient
from pitchperfect.orchestrator import (
    DialogueEngine,
    FeedbackReport,
    InterviewSessionController,
    InterviewSetup,
    JobAnalyzer,
    JobDetails,
    JobPostInput,
    ReportGenerator,
    Role,
    SessionPhase,
)
from pitchperfect.storage import InterviewStore
from pitchperfect.utils import InterviewError

console = Console()


class InterviewApp:
    """Console stand-in for the browser UI"""

    def __init__(self, owner: str, text_only: bool = False, mute: bool = False):
        self.console = console
        self.owner = owner
        self.text_only = text_only
        self.mute = mute

        self.chat = ChatGPTClient()
        self.analyzer = JobAnalyzer(self.chat)
        self.engine = DialogueEngine(self.chat)
        self.reporter = ReportGenerator(self.chat)
        self.store = InterviewStore()
        self.transcriber = TranscriptionClient()
        self.synthesizer = SpeechSynthesisClient()
        self.capture: Optional[AudioCapture] = None

    async def run(self, args):
        self._show_welcome()
        if not config.validate():
            self.console.print("[red]❌ OPENAI_API_KEY is missing. Add it to .env and try again.[/red]")
            return

        try:
            if args.list:
                self._show_interviews()
                return

            if not args.skip_checks:
                self._check_audio()

            job_input = self._get_job_post(args)
            analysis = await self._analyze(job_input)
            if analysis is None:
                return

            record = self.store.create_saved_configuration(self.owner, job_input, analysis)
            setup = self._get_setup()
            await self._run_interview(JobDetails(raw_input=job_input, analysis=analysis), setup, record.id)

        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Cancelled by user.[/yellow]")
        finally:
            await self.transcriber.close()
            await self.synthesizer.close()
            if self.capture is not None:
                self.capture.close()
            logger.info("Application finished, audio resources released.")

    def _show_welcome(self):
        panel = Panel(
            """🎙️  [bold cyan]PitchPerfect[/bold cyan]

Practice interviews generated from a real job description.
Answer by voice or by typing, then get a scored feedback report.

[dim]Models: """ + f"{config.api.interview_model} (interview) | {config.api.whisper_model} (STT) | ElevenLabs (TTS)[/dim]",
            title="Welcome",
            border_style="cyan",
        )
        self.console.print(panel)

    def _check_audio(self):
        """Switch to typed answers when no microphone is usable"""
        if self.text_only:
            return
        try:
            capture = AudioCapture()
            devices = capture.list_input_devices()
        except (ImportError, OSError) as e:
            logger.warning(f"Audio capture unavailable: {e}")
            devices = []
        if not devices:
            self.console.print("[yellow]🎤 No microphone found, answers will be typed.[/yellow]")
            self.text_only = True
        else:
            self.console.print(f"[green]✅ Microphone ready:[/green] {devices[0]['name']}")

    def _get_job_post(self, args) -> JobPostInput:
        self.console.print("\n[bold]📋 Job Post[/bold]")

        if args.job_file:
            path = Path(args.job_file)
            text = path.read_text(encoding="utf-8")
            if path.suffix == ".json":
                return JobPostInput.model_validate(json.loads(text))
            return JobPostInput(description=text)

        title = Prompt.ask("Job title", default="")
        company = Prompt.ask("Company", default="")
        self.console.print("Paste the job description, finish with an empty line:")
        lines = []
        while True:
            line = input()
            if not line.strip():
                break
            lines.append(line)
        return JobPostInput(title=title, company=company, description="\n".join(lines))

    async def _analyze(self, job_input: JobPostInput):
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=self.console) as progress:
            progress.add_task("[cyan]Analyzing the job post...", total=None)
            try:
                analysis = await self.analyzer.analyze(job_input.description, job_input.company, job_input.title)
            except InterviewError as e:
                self.console.print(f"[red]❌ {e.user_message}[/red]")
                return None

        table = Table(title="Job Analysis", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Level", analysis.difficulty)
        table.add_row("Key skills", ", ".join(analysis.key_skills))
        table.add_row("Experience", ", ".join(analysis.required_experience))
        table.add_row("Interview focus", ", ".join(analysis.interview_focus))
        if analysis.work_arrangement:
            table.add_row("Work arrangement", analysis.work_arrangement)
        self.console.print(table)
        return analysis

    def _get_setup(self) -> InterviewSetup:
        self.console.print("\n[bold]⚙️  Interview Setup[/bold]")
        personas = list(config.interview.personas)
        types = list(config.interview.interview_types)
        return InterviewSetup(
            interviewer_persona=Prompt.ask("Interviewer", choices=personas, default=personas[0]),
            interview_type=Prompt.ask("Interview type", choices=types, default=types[0]),
            duration=int(Prompt.ask(
                "Duration (minutes)",
                choices=[str(d) for d in config.interview.durations],
                default="30",
            )),
        )

    async def _run_interview(self, job_details: JobDetails, setup: InterviewSetup, record_id: str):
        playback = None
        if not self.mute and config.api.elevenlabs_api_key:
            playback = AudioPlaybackQueue(
                self.synthesizer,
                AudioPlayer(volume=config.audio.playback_volume),
            )
        if not self.text_only:
            self.capture = AudioCapture(on_tick=lambda s: logger.debug(f"Recording {s}s"))

        controller = InterviewSessionController(
            owner=self.owner,
            job_details=job_details,
            engine=self.engine,
            reporter=self.reporter,
            store=self.store,
            playback=playback,
            transcriber=self.transcriber,
            capture=self.capture,
            setup=setup,
            record_id=record_id,
        )

        self.console.print("\n[bold green]🎬 The interview is starting![/bold green]")
        shown = 0
        try:
            await controller.initialize()
            while controller.phase not in (SessionPhase.COMPLETING, SessionPhase.COMPLETED):
                if controller.phase == SessionPhase.ERRORED:
                    self._show_error(controller)
                    if not Confirm.ask("Try again?", default=True):
                        return
                    await controller.retry()
                    continue

                shown = self._show_new_turns(controller, shown)
                if playback is not None:
                    await playback.await_playback_end()

                if not await self._take_answer(controller):
                    self._show_error(controller)
                    error = controller.state.error
                    if error and error.retryable and controller.state.pending_input:
                        if Confirm.ask("Send the same answer again?", default=True):
                            if playback is not None:
                                await playback.await_playback_end()
                            await controller.retry()

            self._show_new_turns(controller, shown)
            self.console.print("\n[dim]Preparing your feedback report...[/dim]")
            await controller.wait_completed()
        finally:
            await controller.close()

        if controller.state.degraded:
            self.console.print("[yellow]⚠️  The interview was saved, but the report could not be completed.[/yellow]")
        if controller.state.report is not None:
            self._show_report(controller.state.report)

    async def _take_answer(self, controller: InterviewSessionController) -> bool:
        if self.text_only:
            answer = await asyncio.to_thread(Prompt.ask, "[bold]Your answer[/bold]")
            return await controller.submit_text(answer)

        answer = await asyncio.to_thread(
            Prompt.ask, "[bold]Type your answer, or press Enter to record[/bold]", default=""
        )
        if answer.strip():
            return await controller.submit_text(answer)

        if not await controller.start_recording():
            return False
        self.console.print("[red]● Recording...[/red] press Enter to stop")
        await asyncio.to_thread(input)
        return await controller.stop_recording()

    def _show_new_turns(self, controller: InterviewSessionController, shown: int) -> int:
        turns = controller.transcript
        for turn in turns[shown:]:
            if turn.role == Role.INTERVIEWER:
                self.console.print(Panel(turn.text, title=f"🤖 Interviewer ({controller.state.stage.value})", border_style="cyan"))
            else:
                self.console.print(f"[dim]🧑 You: {turn.text}[/dim]")
        return len(turns)

    def _show_error(self, controller: InterviewSessionController):
        error = controller.state.error
        if error is not None:
            self.console.print(f"[red]❌ {error.message}[/red]")

    def _show_report(self, report: FeedbackReport):
        self.console.print("\n[bold]📊 Feedback Report[/bold]")
        self.console.print(Panel(report.overall_assessment, title=f"Overall score: {report.overall_score}/10"))

        table = Table(title="Scores")
        table.add_column("Area", style="cyan")
        table.add_column("Score", style="green")
        table.add_row("Technical", str(report.technical_skills_assessment.score))
        table.add_row("Behavioral", str(report.behavioral_skills_assessment.score))
        table.add_row("Communication", str(report.communication_skills.score))
        table.add_row("Problem solving", str(report.problem_solving_approach.score))
        table.add_row("Cultural fit", str(report.cultural_fit.score))
        self.console.print(table)

        self.console.print("[bold green]Strengths[/bold green]")
        for item in report.strengths:
            self.console.print(f"  • {item}")
        self.console.print("[bold yellow]Areas for improvement[/bold yellow]")
        for item in report.areas_for_improvement:
            self.console.print(f"  • {item}")
        self.console.print(f"\nRecommendation: [bold]{report.hiring_recommendation.value}[/bold]")

    def _show_interviews(self):
        records = self.store.list(self.owner)
        if not records:
            self.console.print("[yellow]No interviews yet.[/yellow]")
            return

        table = Table(title="Your Interviews")
        table.add_column("ID", style="dim")
        table.add_column("Position", style="white")
        table.add_column("Company", style="white")
        table.add_column("Status", style="cyan")
        table.add_column("Score", style="green")
        table.add_column("Created", style="dim")
        for record in records:
            raw = record.job_details.raw_input
            table.add_row(
                record.id[:8],
                raw.title or "-",
                raw.company or "-",
                record.status,
                str(record.overall_score) if record.overall_score is not None else "-",
                record.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        self.console.print(table)

        stats = self.store.stats(self.owner)
        self.console.print(
            f"Total: {stats['total']} | Completed: {stats['completed']} | "
            f"Average score: {stats['average_score'] if stats['average_score'] is not None else '-'}"
        )


def serve(host: str, port: int):
    import uvicorn

    console.print(f"[green]🚀 Serving the interview API on http://{host}:{port}[/green]")
    uvicorn.run("pitchperfect.api.app:app", host=host, port=port, reload=config.app.debug)


def main():
    parser = argparse.ArgumentParser(
        description="PitchPerfect - AI mock interviews from a job description",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                        # interactive interview
  python main.py --job-file job.txt     # description from a file (.txt or .json)
  python main.py --text                 # typed answers only
  python main.py --list                 # past interviews
  python main.py --serve --port 8000    # HTTP API
        """
    )
    parser.add_argument('--job-file', type=str, help='Job description file (.txt, or .json with title/company/description)')
    parser.add_argument('--text', action='store_true', help='Type answers instead of recording them')
    parser.add_argument('--mute', action='store_true', help='Do not speak the questions')
    parser.add_argument('--owner', type=str, default='local', help='Owner id for stored interviews')
    parser.add_argument('--list', action='store_true', help='List stored interviews')
    parser.add_argument('--skip-checks', action='store_true', help='Skip the microphone check')
    parser.add_argument('--serve', action='store_true', help='Run the HTTP API')
    parser.add_argument('--host', type=str, default=config.app.host)
    parser.add_argument('--port', type=int, default=config.app.port)

    args = parser.parse_args()

    if args.serve:
        serve(args.host, args.port)
        return

    app = InterviewApp(owner=args.owner, text_only=args.text, mute=args.mute)
    try:
        asyncio.run(app.run(args))
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Program closed.[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red]Critical error: {str(e)}[/red]")
        logger.exception("Critical error")
        sys.exit(1)


if __name__ == "__main__":
    main()
