'''
Tutor booking backend: tutor availability, lesson requests and lessons.
'''
