import re
import logging
from typing import Dict, Iterable, List

from sqlalchemy import func

from database import db
from models import CandidateSkill, Skill
from utils import clamp, clean_str, truncate

logger = logging.getLogger(__name__)

# First matching group wins
CATEGORY_PATTERNS = [
    ('programming', r'javascript|typescript|python|java|c\+\+|c#|php|ruby|go|rust|swift|kotlin'
                    r'|react|vue|angular|node\.?js|django|flask|spring|laravel'),
    ('database', r'mysql|postgresql|mongodb|redis|sqlite|oracle|sql server|firebase|dynamodb|cassandra'),
    ('devops', r'aws|azure|google cloud|gcp|docker|kubernetes|jenkins|git|github|gitlab|terraform|ansible'),
    ('design', r'photoshop|illustrator|figma|sketch|ui/ux|graphic design|adobe|design'),
    ('analytics', r'tableau|power bi|excel|analytics|machine learning|data analysis|pandas|numpy'),
    ('management', r'leadership|management|project management|agile|scrum|communication|teamwork'),
]
_CATEGORY_REGEXES = [
    (category, re.compile(r'(?<!\w)(?:' + pattern + r')(?!\w)'))
    for category, pattern in CATEGORY_PATTERNS
]

SOURCE_FIELDS = ('source_title', 'source_company', 'source_institution', 'source_authority')


def infer_skill_category(name: str) -> str:
    skill = (name or '').lower()
    for category, regex in _CATEGORY_REGEXES:
        if regex.search(skill):
            return category
    return 'other'

def dedupe_skills(skills: Iterable[Dict]) -> List[Dict]:
    """Keep one entry per skill name (case-insensitive), the most proficient one"""
    best = {}
    for entry in skills or []:
        if not isinstance(entry, dict):
            continue
        name = clean_str(entry.get('skill_name') or entry.get('name'))
        if not name:
            continue
        proficiency = clamp(entry.get('proficiency'), 0, 100, 60)
        key = name.lower()
        if key not in best or proficiency > best[key][1]:
            best[key] = (dict(entry, skill_name=name), proficiency)
    return [entry for entry, _ in best.values()]

def get_or_create_skills(names: Iterable[str], category: str = None) -> Dict[str, Skill]:
    """Resolve skill names case-insensitively, creating the missing ones.

    Returns a mapping of lower-cased name to Skill. New skills get
    `category` or, when omitted, an inferred one.
    """
    wanted = {}
    for name in names:
        name = clean_str(name)
        if name:
            wanted.setdefault(name.lower(), name)
    if not wanted:
        return {}

    existing = Skill.query.filter(func.lower(Skill.name).in_(list(wanted))).all()
    resolved = {skill.name.lower(): skill for skill in existing}

    created = 0
    for key, name in wanted.items():
        if key not in resolved:
            skill = Skill(name=name, category=category or infer_skill_category(name), is_active=True)
            db.session.add(skill)
            resolved[key] = skill
            created += 1

    if created:
        db.session.flush()
        logger.debug(f"Created {created} new skills")
    return resolved

def sync_candidate_skills(candidate, skills: Iterable[Dict]) -> int:
    """Replace all of a candidate's skills. Returns the number of links created.

    The caller owns the transaction.
    """
    entries = dedupe_skills(skills)

    candidate.candidate_skills.clear()
    db.session.flush()
    if not entries:
        return 0

    resolved = get_or_create_skills(entry['skill_name'] for entry in entries)
    for entry in entries:
        link = CandidateSkill(
            skill=resolved[entry['skill_name'].lower()],
            skill_source=clean_str(entry.get('skill_source')) or 'manual',
            proficiency=int(clamp(entry.get('proficiency'), 0, 100, 60)),
            years_of_experience=float(clamp(entry.get('years_of_experience'), 0, 50, 0)),
            source_type=clean_str(entry.get('source_type')) or 'manual',
        )
        for field in SOURCE_FIELDS:
            setattr(link, field, truncate(clean_str(entry.get(field)), 200))
        candidate.candidate_skills.append(link)

    db.session.flush()
    logger.info(f"Linked {len(entries)} skills to candidate {candidate.user_id}")
    return len(entries)

def list_active_skills():
    return Skill.query.filter_by(is_active=True).order_by(Skill.category, Skill.name).all()
