"""
completion_report/data_dictionary.py

Column names, descriptions and declared types for the online-course
engagement dataset. The loader validates against this, the report and the
Streamlit UI use the descriptions.
"""

ID_COL = "UserID"
CATEGORY_COL = "CourseCategory"
DEVICE_COL = "DeviceType"
TARGET = "CourseCompletion"

DATA_DICTIONARY = {
    "UserID": "Unique identifier for the user (not used as a model feature).",
    "CourseCategory": "Course subject area (e.g., Programming, Business, Arts).",
    "TimeSpentOnCourse": "Total time spent on the course, in hours.",
    "NumberOfVideosWatched": "Count of course videos watched.",
    "NumberOfQuizzesTaken": "Count of quizzes attempted.",
    "QuizScores": "Average quiz score (0–100).",
    "CompletionRate": "Percentage of course content completed (0–100).",
    "DeviceType": "Device used most often (0 = desktop, 1 = mobile).",
    "CourseCompletion": "Target variable (1 = completed the course, 0 = did not).",
}

# Required header, in file order.
COLUMNS = list(DATA_DICTIONARY)

# Declared storage type per column; loader inference must agree on a clean file.
SCHEMA_TYPES = {
    "UserID": "numeric",
    "CourseCategory": "categorical",
    "TimeSpentOnCourse": "numeric",
    "NumberOfVideosWatched": "numeric",
    "NumberOfQuizzesTaken": "numeric",
    "QuizScores": "numeric",
    "CompletionRate": "numeric",
    "DeviceType": "numeric",
    "CourseCompletion": "numeric",
}

BINARY_COLUMNS = [DEVICE_COL, TARGET]

ENGAGEMENT_METRICS = [
    "TimeSpentOnCourse",
    "NumberOfVideosWatched",
    "NumberOfQuizzesTaken",
    "QuizScores",
    "CompletionRate",
]

# Predictors of the full model; stepwise search may also add CourseCategory.
DEFAULT_PREDICTORS = ENGAGEMENT_METRICS + [DEVICE_COL]
PREDICTOR_UNIVERSE = DEFAULT_PREDICTORS + [CATEGORY_COL]

COURSE_CATEGORIES = ["Arts", "Business", "Health", "Programming", "Science"]
