"""
AI-assisted generation and rendering
generation/

1. gpt_client         - shared chat-completions call (OPENAI or MOCK provider)
2. paper_generator    - question-paper prompt, response parsing, mock paper
3. question_generator - question-bank generation for a subject/unit
4. answer_checker     - per-question grading of an answer sheet
5. sample_analyzer    - PDF text extraction + structural analysis
6. paper_exporter     - paginated PDF layout for a question paper
"""
