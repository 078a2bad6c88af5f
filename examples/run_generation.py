import os

from chains.code_generator import make_generation_chain, run_generation
from errors import ConfigError
from fallback import build_fallback_response


def main():
    api_key = os.getenv('GENAI_API_KEY')

    sample = "Build a pricing card with three tiers and a highlighted middle plan."

    print('Generating component for:')
    print(sample)

    try:
        answer = run_generation(make_generation_chain(api_key=api_key), sample)
    except ConfigError as e:
        print(f'\n{e}; answering from the fallback templates.')
        answer = build_fallback_response(sample)

    print('\n' + answer.message)
    for artifact in answer.code:
        print(f'\n--- {artifact.file_path} ({artifact.language})')
        print(artifact.content)


if __name__ == '__main__':
    main()
