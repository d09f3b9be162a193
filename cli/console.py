"""Console UI for wordsnap application."""

import requests

from core.config import MODES, MODE_PRONOUNCE, MODE_SPELL, STATUS_PAUSED
from cli.api_client import WordSnapAPIClient


def error_message(error: Exception) -> str:
    """Pull the server's message out of an HTTP error, if there is one."""
    if isinstance(error, requests.HTTPError) and error.response is not None:
        try:
            detail = error.response.json().get('detail')
        except ValueError:
            return str(error)
        if isinstance(detail, dict):
            return detail.get('message', str(detail))
        return str(detail)
    return str(error)


class ConsoleUI:
    """Console user interface for wordsnap application."""

    def __init__(self, client: WordSnapAPIClient):
        self.client = client

    def print_evaluation(self, result: dict):
        """Print evaluation results."""
        print('-' * 40)
        print(f'Target word: {result["word"]}')
        print(f'Your attempt: {result["transcript"]}')
        print(f'Pronunciation: {result["pronunciation_score"]:.0f}  Spelling: {result["spelling_score"]:.0f}')
        print(result['feedback'])
        print('-' * 40)

    def print_results(self, results: dict):
        """Print the per-word results table."""
        print('\n' + '=' * 50)
        print('QUIZ RESULTS')
        print('=' * 50)
        for word in results['words']:
            mark = 'ok' if word['correct'] else '--'
            score = f"{word['final_score']:.0f}" if word['final_score'] is not None else '-'
            print(f"  [{mark}] {word['word']:<20} score {score:>4}  attempts {word['attempts']}")
        print(f"\nCorrect: {results['correct_words']}/{results['total_words']}")
        if results['overall_score'] is not None:
            print(f"Overall score: {results['overall_score']:.1f}")
        print('=' * 50 + '\n')

    def print_history(self, history: dict):
        """Print the user's previous quizzes."""
        if not history['quizzes']:
            print('No quizzes yet.')
            return
        print('\nYour quizzes:')
        for i, quiz in enumerate(history['quizzes'], start=1):
            score = f" score {quiz['overall_score']:.1f}" if quiz['overall_score'] is not None else ''
            print(f"  {i}. {quiz['session_id'][:8]} {quiz['mode']:<9} {quiz['status']:<9} "
                  f"{quiz['progress_display']}{score}")

    def choose_mode(self) -> str:
        while True:
            choice = input(f'Mode [{MODE_PRONOUNCE}/{MODE_SPELL}] (default {MODE_PRONOUNCE}): ').strip().lower()
            if not choice:
                return MODE_PRONOUNCE
            if choice in MODES:
                return choice
            print(f'Please choose one of: {", ".join(MODES)}')

    def start_quiz(self) -> dict | None:
        """Ask for a photo or text and start a quiz. Returns the quiz or None."""
        print('\nStart a quiz from:')
        print('  1. a photo (path to a JPEG/PNG file)')
        print('  2. typed text')
        print('  3. one of your previous quizzes')
        choice = input('==> ').strip()

        try:
            if choice == '1':
                path = input('Image path: ').strip()
                return self.client.start_from_image(path, self.choose_mode())
            if choice == '2':
                text = input('Text: ').strip()
                return self.client.start_from_text(text, self.choose_mode())
            if choice == '3':
                history = self.client.list_quizzes()
                self.print_history(history)
                if not history['quizzes']:
                    return None
                index = int(input('Quiz number: ').strip()) - 1
                quiz = self.client.get_quiz(history['quizzes'][index]['session_id'])
                if quiz['status'] == STATUS_PAUSED:
                    quiz = self.client.resume(quiz['session_id'])
                return quiz
        except (ValueError, IndexError):
            print('Invalid choice.')
        except (OSError, requests.RequestException) as e:
            print(f'Could not start quiz: {error_message(e)}')
        return None

    def read_attempt(self, quiz: dict) -> str | None:
        """Read one attempt. Returns the transcript, or None to stop drilling."""
        word = quiz['current_word']
        verb = 'Type the spelling' if quiz['mode'] == MODE_SPELL else 'Type what you said, or "!audio <path>"'
        while True:
            user_input = input(f'{verb} ==> ').strip()
            if user_input.lower() == 'exit':
                return None
            if user_input.lower() == 'pause':
                try:
                    self.client.pause(quiz['session_id'])
                except requests.RequestException as e:
                    print(f'Could not pause: {error_message(e)}')
                    continue
                print('Quiz paused. Pick it up later from your previous quizzes.')
                return None
            if user_input.startswith('!audio '):
                try:
                    data = self.client.transcribe(quiz['session_id'], user_input[7:].strip())
                except (OSError, requests.RequestException) as e:
                    print(f'Could not transcribe: {error_message(e)}')
                    continue
                if data['use_client_recognition']:
                    print('No transcript available; please type what you said.')
                    continue
                print(f'Heard: {data["transcript"]}')
                return data['transcript']
            if user_input:
                return user_input
            print(f'\n>>> {word}')

    def drill(self, quiz: dict):
        """Drill each remaining word until the quiz completes or the user stops."""
        while quiz['current_word'] is not None:
            print(f"\n[{quiz['progress_display']}]  >>> {quiz['current_word']}")
            transcript = self.read_attempt(quiz)
            if transcript is None:
                return
            try:
                data = self.client.submit_attempt(quiz['session_id'], quiz['current_word'], transcript)
            except requests.RequestException as e:
                print(f'Error submitting attempt: {error_message(e)}')
                continue
            self.print_evaluation(data['result'])
            quiz = data['quiz']

        self.print_results(self.client.get_results(quiz['session_id']))

    def run(self):
        """Run the main application loop."""
        # Check server connection
        try:
            health = self.client.health_check()
            print(f"Connected to wordsnap server ({health['service']})")
        except requests.RequestException:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        print('\nWordSnap vocabulary practice!')
        print('Commands while drilling: "pause" to pause the quiz, "exit" to leave\n')

        while True:
            quiz = self.start_quiz()
            if quiz:
                self.drill(quiz)
            if input('Start another quiz? [y/N] ').strip().lower() != 'y':
                print('Goodbye!')
                return
