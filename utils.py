import math
import os
import re
import logging
from datetime import datetime, date
from functools import wraps
from typing import List, Optional
from urllib.parse import urlparse
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

def validate_email(email: str) -> bool:
    """Validate email address format"""
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))

def validate_url(url: str) -> bool:
    """Accept absolute http(s) URLs only"""
    if not url:
        return False

    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)

def clean_filename(filename: str) -> str:
    """Clean and secure filename"""
    if not filename:
        return "unnamed_file"

    # Remove path components
    filename = os.path.basename(filename)

    # Secure the filename
    secure_name = secure_filename(filename)

    # If secure_filename returns empty string, provide default
    if not secure_name:
        ext = os.path.splitext(filename)[1]
        secure_name = f"file_{datetime.now().strftime('%Y%m%d_%H%M%S')}{ext}"

    return secure_name

def get_file_extension(filename: str) -> str:
    """Get file extension from filename"""
    if not filename:
        return ""

    return os.path.splitext(filename.lower())[1]

def clean_str(value) -> Optional[str]:
    """Trim a string value; blank becomes None"""
    if value is None:
        return None
    value = str(value).strip()
    return value or None

def truncate(value: Optional[str], max_length: int) -> Optional[str]:
    if value is None:
        return None
    return value[:max_length]

def to_number(value):
    """Coerce finite JSON numbers and numeric strings, None otherwise"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            text = str(value).strip()
            number = float(text) if '.' in text else int(text)
        except ValueError:
            return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number

def clamp(value, low, high, default):
    number = to_number(value)
    if number is None:
        return default
    return max(low, min(high, number))

def parse_date(value) -> Optional[date]:
    """Parse 'YYYY-MM-DD', 'YYYY-MM', 'YYYY' or an ISO timestamp into a date"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for fmt in ('%Y-%m-%d', '%Y-%m', '%Y'):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return None

def months_between(start: Optional[date], end: Optional[date]) -> int:
    """Whole calendar months from start to end, never negative"""
    if not start or not end:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)

def duration_in_years(start, end, today: Optional[date] = None) -> float:
    """Length of a dated entry in years, one decimal, capped at 20"""
    start_date = parse_date(start)
    if not start_date:
        return 0
    end_date = parse_date(end) or today or date.today()
    days = abs((end_date - start_date).days)
    return min(round(days / 365.25, 1), 20)

# Ordered catalogue used for keyword matching in free text
COMMON_SKILLS = [
    # Programming languages
    'JavaScript', 'TypeScript', 'Python', 'Java', 'C++', 'C#', 'PHP', 'Ruby', 'Go', 'Rust',
    'Swift', 'Kotlin', 'Scala', 'R', 'MATLAB', 'C', 'Perl', 'Objective-C',

    # Frontend
    'React', 'Vue.js', 'Vue', 'Angular', 'HTML', 'CSS', 'Sass', 'SCSS', 'Less', 'Bootstrap',
    'Tailwind CSS', 'Tailwind', 'jQuery', 'Next.js', 'Nuxt.js', 'Svelte', 'Ember.js',

    # Backend
    'Node.js', 'Express.js', 'Express', 'Django', 'Flask', 'FastAPI', 'Spring Boot', 'Spring',
    'Laravel', 'Ruby on Rails', 'Rails', 'ASP.NET', '.NET Core', 'NestJS',

    # Databases
    'MySQL', 'PostgreSQL', 'MongoDB', 'Redis', 'SQLite', 'Oracle', 'SQL Server', 'Firebase',
    'Firestore', 'DynamoDB', 'Cassandra', 'Neo4j', 'MariaDB', 'CouchDB',

    # Cloud and DevOps
    'AWS', 'Azure', 'Google Cloud', 'GCP', 'Docker', 'Kubernetes', 'Jenkins', 'Git', 'GitHub',
    'GitLab', 'CI/CD', 'Terraform', 'Ansible', 'Chef', 'Puppet', 'Vagrant',

    # Data and analytics
    'SQL', 'Excel', 'Tableau', 'Power BI', 'Pandas', 'NumPy', 'Machine Learning',
    'Data Analysis', 'TensorFlow', 'PyTorch', 'Scikit-learn', 'Apache Spark', 'Hadoop',

    # Mobile
    'React Native', 'Flutter', 'iOS', 'Android', 'Xamarin', 'Ionic', 'Cordova', 'PhoneGap',

    # Testing
    'Jest', 'Cypress', 'Selenium', 'JUnit', 'TestNG', 'Mocha', 'Jasmine', 'Playwright', 'Puppeteer',

    # Methodologies
    'Agile', 'Scrum', 'Kanban', 'JIRA', 'Trello', 'Asana', 'Waterfall', 'Lean', 'Six Sigma', 'PMP',

    # Design
    'Photoshop', 'Illustrator', 'Figma', 'Sketch', 'UI/UX Design', 'UI Design', 'UX Design',
    'Graphic Design', 'Adobe Creative Suite', 'InDesign',

    # Soft skills
    'Leadership', 'Communication', 'Project Management', 'Problem Solving', 'Teamwork',
    'Time Management', 'Critical Thinking', 'Analytical Thinking', 'Creativity',

    # Business
    'Microsoft Office', 'PowerPoint', 'Word', 'QuickBooks', 'SAP', 'Salesforce',
    'Financial Analysis', 'Accounting', 'Budgeting', 'Forecasting',
]

_SKILL_PATTERNS = [
    (skill, re.compile(r'(?<!\w)' + re.escape(skill) + r'(?!\w)', re.IGNORECASE))
    for skill in COMMON_SKILLS
]

def extract_skills_from_text(text: str) -> List[str]:
    """Extract known skills from text using whole-word keyword matching"""
    if not text:
        return []

    skills = []
    for skill, pattern in _SKILL_PATTERNS:
        if pattern.search(text) and skill not in skills:
            skills.append(skill)

    return skills

def log_processing_time(func):
    """Decorator to log function processing time"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
            end_time = datetime.now()
            processing_time = (end_time - start_time).total_seconds()

            logger.info(f"{func.__name__} completed in {processing_time:.2f} seconds")
            return result

        except Exception as e:
            end_time = datetime.now()
            processing_time = (end_time - start_time).total_seconds()

            logger.error(f"{func.__name__} failed after {processing_time:.2f} seconds: {e}")
            raise

    return wrapper
