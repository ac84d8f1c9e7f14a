"""Builders for canned generative output and a scripted capability."""
import copy

DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class FakeCapability:
    """Returns scripted answers per tool name.

    Each tool maps to a list of answers consumed in order; the last answer
    repeats. An exception instance in the list is raised instead of returned.
    """

    def __init__(self, responses):
        self.responses = {name: list(answers) for name, answers in responses.items()}
        self.calls = []

    def generate(self, prompt, tool):
        self.calls.append((tool["name"], prompt))
        answers = self.responses[tool["name"]]
        answer = answers.pop(0) if len(answers) > 1 else answers[0]
        if isinstance(answer, Exception):
            raise answer
        return copy.deepcopy(answer)

    def prompts_for(self, tool_name):
        return [prompt for name, prompt in self.calls if name == tool_name]


def core_payload():
    return {
        "proteins": ["chicken breast", "eggs", "salmon"],
        "vegetables": ["spinach", "broccoli", "bell pepper", "zucchini", "carrots"],
        "fruits": ["banana", "blueberries"],
        "grains": ["brown rice", "oats"],
        "fats": ["olive oil", "avocado", "almonds"],
        "dairy": ["greek yogurt"],
    }


def meal_payload(day, meal_type):
    return {
        "day": day,
        "type": meal_type,
        "name": f"{day.capitalize()} {meal_type} chicken bowl",
        "ingredients": [
            {"name": "Chicken Breast", "amount": "6", "unit": "oz", "category": "protein",
             "calories": 280, "protein": 52, "carbs": 0, "fat": 6},
            {"name": "brown rice", "amount": "1/2", "unit": "cup", "category": "grains",
             "calories": 110, "protein": 2.5, "carbs": 23, "fat": 1},
            {"name": "olive oil", "amount": "a drizzle", "unit": "", "category": "fats",
             "calories": 40, "protein": 0, "carbs": 0, "fat": 4.5},
        ],
        "instructions": ["Season and sear the chicken", "Serve over rice with oil"],
        "prep_time_minutes": 10,
        "cook_time_minutes": 20,
        "macros": {"calories": 430, "protein": 54.5, "carbs": 23, "fat": 11.5},
    }


def meals_payload(meal_types=("breakfast", "lunch", "dinner")):
    return {
        "title": "High Protein Week",
        "meals": [meal_payload(day, meal_type) for day in DAYS for meal_type in meal_types],
    }


def prep_payload():
    return {
        "prep_sessions": [
            {
                "session_name": "Sunday batch cook",
                "session_day": "sunday",
                "estimated_minutes": 90,
                "instructions": ["Bake all chicken", "Cook rice"],
                "feeds": [{"day": "monday", "meal_type": "lunch"}],
            }
        ],
        "daily_assembly": {"monday": {"lunch": "Reheat and assemble"}},
    }


def happy_capability():
    return FakeCapability({
        "select_core_ingredients": [core_payload()],
        "generate_meals": [meals_payload()],
        "generate_prep_sessions": [prep_payload()],
    })
