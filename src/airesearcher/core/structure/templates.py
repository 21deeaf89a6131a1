"""Default files written into a fresh data directory."""

import json

DEFAULT_SETTINGS = {
    "theme": "light",
    "defaultModel": "gemini-2.0-flash",
    "notificationsEnabled": True,
    "activeProvider": "geminiCli",
}

DEFAULT_SETTINGS_JSON = json.dumps(DEFAULT_SETTINGS, indent=2) + "\n"

README = """# AI Researcher Application Data

This directory contains all the data for your AI Researcher application.

## Directory Structure

- **projects/**: Contains all your research projects
- **skills/**: Contains custom skills for the AI agent
- **templates/**: Contains project and skill templates
- **backups/**: Backups of your data, created before every update
- **logs/**: Application log files

## Files

- **settings.json**: Global application settings
- **secrets.encrypted.json**: Encrypted secrets and API keys

## Updates

Your data is preserved during updates:
- Projects are never overwritten
- Custom skills are preserved
- Settings and secrets remain intact
- New templates are added without removing existing ones

A backup is taken before anything in this directory is changed by an
update. Backups can be restored from the settings page.
"""

PROJECT_TEMPLATE = """---
name: New Project
description: A new research project
created_at: ""
updated_at: ""
tags: []
---

# {project_name}

## Overview

Describe your research project here.

## Goals

- Goal 1
- Goal 2
- Goal 3

## Scope

Define the scope of the project.

## Notes

Add your research notes here.
"""

SKILL_TEMPLATE = """---
name: New Skill
category: general
description: A new custom skill
version: 1.0.0
author: ""
tags: []
---

# {skill_name}

## Role

Define the role this skill plays (e.g., "You are a Python expert...").

## Tasks

- Task 1
- Task 2

## Output

Describe the expected output format and structure.

## Examples

### Example 1

Input: Example input
Expected Output: Example output
"""

RESEARCH_ASSISTANT_SKILL = """---
name: Research Assistant
category: research
description: Helps with literature reviews, citations and paper analysis
version: 1.0.0
author: AI Researcher Team
tags: [research, academic, citations]
---

# Research Assistant Skill

## Role

You are an experienced academic research assistant. You help with
literature reviews, citation formatting (APA, MLA, Chicago), paper
analysis and research design. Provide evidence-based suggestions and cite
sources when applicable.

## Examples

### Example 1

Input: "I need to review recent papers on machine learning in healthcare"
Expected Output: A structured summary of recent papers with key findings and research gaps
"""

DATA_ANALYST_SKILL = """---
name: Data Analyst
category: analysis
description: Analyzes datasets, suggests visualizations and reports insights
version: 1.0.0
author: AI Researcher Team
tags: [data, analysis, visualization, statistics]
---

# Data Analyst Skill

## Role

You are a professional data analyst. You explore distributions, run
statistical tests, recommend visualizations and flag data quality issues.
Provide clear, actionable insights supported by statistical evidence.

## Examples

### Example 1

Input: Time series sales data
Expected Output: Trend analysis, seasonality detection, forecasting recommendations
"""

# File name -> content, all placed under templates/
DEFAULT_TEMPLATES = {
    "basic_project_template.md": PROJECT_TEMPLATE,
    "basic_skill_template.md": SKILL_TEMPLATE,
    "research_assistant_skill.md": RESEARCH_ASSISTANT_SKILL,
    "data_analyst_skill.md": DATA_ANALYST_SKILL,
}
