"""
Default notification templates shipped with the service.

Used by the initial migration and by ``TemplateRepository.seed_defaults``.
"""

DEFAULT_TEMPLATES: list[dict] = [
    {
        "name": "essay_graded",
        "type": "essay_graded",
        "title_template": "Essay Graded: {essay_title}",
        "message_template": "Your essay has been graded with a score of {score}/100 ({grade}).",
        "default_priority": "normal",
        "default_channels": ["in_app", "push"],
        "default_icon": "CheckCircle",
        "variables": ["essay_title", "score", "grade"],
    },
    {
        "name": "flashcards_due",
        "type": "flashcard_due",
        "title_template": "{cards_due_count} Flashcards Due",
        "message_template": "You have {cards_due_count} flashcards ready for review in {deck_name}.",
        "default_priority": "normal",
        "default_channels": ["in_app"],
        "default_icon": "Layers",
        "variables": ["cards_due_count", "deck_name"],
    },
    {
        "name": "study_reminder",
        "type": "study_reminder",
        "title_template": "Time to Study!",
        "message_template": "Don't forget your scheduled study session for {subject}.",
        "default_priority": "normal",
        "default_channels": ["push", "email"],
        "default_icon": "Clock",
        "variables": ["subject"],
    },
    {
        "name": "collaboration_invite",
        "type": "collaboration",
        "title_template": "Collaboration Invite",
        "message_template": "{collaborator_name} invited you to collaborate on {document_title}.",
        "default_priority": "normal",
        "default_channels": ["in_app", "push"],
        "default_icon": "Users",
        "variables": ["collaborator_name", "document_title"],
    },
    {
        "name": "achievement_unlocked",
        "type": "achievement",
        "title_template": "Achievement Unlocked!",
        "message_template": "Congratulations! You've earned the {achievement_name} badge.",
        "default_priority": "low",
        "default_channels": ["in_app", "push"],
        "default_icon": "Award",
        "variables": ["achievement_name"],
    },
    {
        "name": "new_message",
        "type": "message",
        "title_template": "New Message from {sender_name}",
        "message_template": "You have a new message in {chat_title}.",
        "default_priority": "normal",
        "default_channels": ["in_app", "push"],
        "default_icon": "MessageSquare",
        "variables": ["sender_name", "chat_title"],
    },
    {
        "name": "system_maintenance",
        "type": "system",
        "title_template": "Scheduled Maintenance",
        "message_template": "We'll be performing system maintenance on {maintenance_date}.",
        "default_priority": "high",
        "default_channels": ["in_app", "email"],
        "default_icon": "AlertTriangle",
        "variables": ["maintenance_date"],
    },
    {
        "name": "quiz_completed",
        "type": "success",
        "title_template": "Quiz Completed!",
        "message_template": "You scored {score}% on {quiz_title}.",
        "default_priority": "normal",
        "default_channels": ["in_app"],
        "default_icon": "CheckCircle",
        "variables": ["score", "quiz_title"],
    },
]
