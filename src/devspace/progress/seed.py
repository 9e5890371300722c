"""Built-in exercise set shipped with every installation."""

from __future__ import annotations

from devspace.progress.models import Difficulty, TaskView

_SEED: tuple[tuple[str, str, str, str, str, Difficulty], ...] = (
    (
        "1",
        "Basics",
        "Hello World",
        "Write a program that prints 'Hello, World!' to the console.",
        "print('Hello, World!')",
        Difficulty.EASY,
    ),
    (
        "2",
        "Variables",
        "Name and Age",
        "Create variables for name and age, then print "
        "'My name is [name] and I am [age] years old.'",
        "name = 'Alice'\nage = 25\nprint(f'My name is {name} and I am {age} years old.')",
        Difficulty.EASY,
    ),
    (
        "3",
        "Numbers",
        "Simple Addition",
        "Create a program that adds two numbers (10 and 20) and prints the sum.",
        "a = 10\nb = 20\nprint(a + b)",
        Difficulty.EASY,
    ),
    (
        "4",
        "Strings",
        "String Concatenation",
        "Combine two strings 'Hello' and 'Python' with a space between them.",
        "str1 = 'Hello'\nstr2 = 'Python'\nprint(f'{str1} {str2}')",
        Difficulty.EASY,
    ),
    (
        "5",
        "Input",
        "User Input",
        "Get user's name as input and print 'Hello, [name]!'",
        "name = input('Enter your name: ')\nprint(f'Hello, {name}!')",
        Difficulty.MEDIUM,
    ),
)


def builtin_tasks() -> list[TaskView]:
    """Return fresh, uncompleted copies of the built-in tasks in seed order."""

    return [
        TaskView(
            task_id=task_id,
            category=category,
            title=title,
            description=description,
            code=code,
            difficulty=difficulty,
            position=position,
            builtin=True,
        )
        for position, (task_id, category, title, description, code, difficulty) in enumerate(
            _SEED,
        )
    ]
