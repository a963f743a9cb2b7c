import os
import sys
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

errors = []
warnings = []

import argparse

parser = argparse.ArgumentParser()
parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
parser.add_argument('--skip-network', action='store_true', help='Do not call the OpenAI API')
args = parser.parse_args()
STRICT = args.strict

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
    'openai': ['OPENAI_API_KEY', 'OPENAI_MODEL'],
}

def check_presence(cat, keys):
    for k in keys:
        if not os.getenv(k):
            errors.append(f"{cat}: Missing {k}")

for cat, keys in required.items():
    check_presence(cat, keys)

# Format checks
try:
    port = int(os.getenv('PORT', '0'))
    if port < 1 or port > 65535:
        errors.append('PORT must be integer between 1 and 65535')
except ValueError:
    errors.append('PORT must be an integer')

openai_key = os.getenv('OPENAI_API_KEY', '')
if openai_key and not openai_key.startswith('sk-'):
    warnings.append('OPENAI_API_KEY does not start with sk-; verify provider')

# Validate numeric env ranges
try:
    temperature = float(os.getenv('GENERATION_TEMPERATURE', '0.7'))
    if temperature < 0.0 or temperature > 2.0:
        errors.append('GENERATION_TEMPERATURE must be between 0.0 and 2.0')
except ValueError:
    errors.append('GENERATION_TEMPERATURE must be a float')

try:
    max_tokens = int(os.getenv('GENERATION_MAX_TOKENS', '4000'))
    if max_tokens < 256:
        warnings.append('GENERATION_MAX_TOKENS below 256 will truncate most resources')
except ValueError:
    errors.append('GENERATION_MAX_TOKENS must be an integer')

try:
    max_count = int(os.getenv('MAX_QUESTION_COUNT', '50'))
    if max_count < 1 or max_count > 100:
        errors.append('MAX_QUESTION_COUNT must be between 1 and 100')
except ValueError:
    errors.append('MAX_QUESTION_COUNT must be an integer')

try:
    max_transcript = int(os.getenv('MAX_TRANSCRIPT_LENGTH', '5000'))
    if max_transcript < 100:
        errors.append('MAX_TRANSCRIPT_LENGTH must be at least 100')
except ValueError:
    errors.append('MAX_TRANSCRIPT_LENGTH must be an integer')

try:
    timeout = float(os.getenv('OPENAI_TIMEOUT', '60'))
    if timeout <= 0:
        errors.append('OPENAI_TIMEOUT must be positive')
except ValueError:
    errors.append('OPENAI_TIMEOUT must be a number')

# Template catalogue must cover every resource type
try:
    sys.path.insert(0, str(Path(__file__).parent.parent))
    from modules.templates import TemplateRegistry
    registry = TemplateRegistry()
    print(f'Templates: {len(registry.keys())} entries')
except ValueError as e:
    errors.append(f'Template catalogue incomplete: {e}')

# OpenAI check - use 1.x client API (OpenAI)
if openai_key and not args.skip_network:
    try:
        from openai import OpenAI
        client = OpenAI(api_key=openai_key, max_retries=0)
        client.models.list()
        print('OpenAI: API reachable')
    except Exception as e:
        warnings.append(f'OpenAI check failed: {e}')

if errors:
    print('\nENV validation failed:')
    for e in errors:
        print(' -', e)
    sys.exit(1)

if warnings:
    print('\nWarnings:')
    for w in warnings:
        print(' -', w)
    if STRICT:
        print('\nStrict mode enabled: treating warnings as errors')
        sys.exit(1)

print('\nAll critical validations passed')
sys.exit(0)
