"""Domain services: catalog, lexicon, quests, answers, progress, friends, tts."""
