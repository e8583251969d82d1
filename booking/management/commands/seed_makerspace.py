"""
Management command to seed the default makerspace catalogue.

Creates the machines, their training courses and quizzes, and optionally an
admin account. Safe to run repeatedly: existing rows are updated in place.

Usage:
    python manage.py seed_makerspace
    python manage.py seed_makerspace --admin-username admin --admin-email admin@example.com
"""

from django.conf import settings
from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.db import transaction

from booking.models import Course, Machine, Quiz, UserProfile
from booking.status import MachineCategory, MachineStatus


def _safety_course_id():
    return getattr(settings, 'SAFETY_COURSE_MACHINE_ID', 'safety-course')


MACHINES = [
    {
        'id': 'laser-cutter',
        'name': 'Laser Cutter',
        'machine_type': 'Laser Cutter',
        'category': MachineCategory.MACHINE,
        'description': 'Professional grade 120W CO2 laser cutter for precision cutting and engraving.',
        'requires_certification': True,
        'difficulty': 'Intermediate',
        'specifications': 'Working area: 32" x 20", Power: 120W, Materials: Wood, Acrylic, Paper, Leather',
    },
    {
        'id': 'ultimaker',
        'name': 'Ultimaker',
        'machine_type': '3D Printer',
        'category': MachineCategory.MACHINE,
        'description': 'FDM 3D printing for rapid prototyping and model creation.',
        'requires_certification': True,
        'difficulty': 'Intermediate',
        'specifications': '',
    },
    {
        'id': 'x1-e-carbon',
        'name': 'X1 E Carbon 3D Printer',
        'machine_type': '3D Printer',
        'category': MachineCategory.MACHINE,
        'description': 'Carbon fiber 3D printer for high-strength parts.',
        'requires_certification': True,
        'difficulty': 'Advanced',
        'specifications': '',
    },
    {
        'id': 'bambu-lab-x1-e',
        'name': 'Bambu Lab X1 E',
        'machine_type': '3D Printer',
        'category': MachineCategory.MACHINE,
        'description': 'Next-generation 3D printing technology with advanced features.',
        'requires_certification': True,
        'difficulty': 'Intermediate',
        'specifications': 'Build volume: 256 x 256 x 256 mm, Max Speed: 500mm/s, Materials: PLA, PETG, TPU, ABS, PC',
    },
    {
        'id': 'safety-cabinet',
        'name': 'Safety Cabinet',
        'machine_type': 'Safety Equipment',
        'category': MachineCategory.SAFETY,
        'description': 'Store hazardous materials safely.',
        'requires_certification': False,
        'difficulty': 'Basic',
        'specifications': 'Capacity: 30 gallons, Fire resistant: 2 hours',
    },
    {
        'id': None,  # the configured safety course id
        'name': 'Safety Course',
        'machine_type': 'Certification',
        'category': MachineCategory.SAFETY,
        'description': 'Basic safety training for the makerspace.',
        'requires_certification': False,
        'difficulty': 'Basic',
        'specifications': 'Duration: 1 hour, Required for all makerspace users',
    },
]

# Keyed by machine id; None is the safety course
TRAINING = {
    'laser-cutter': {
        'course': ('Laser Cutter Training', "Learn how to safely operate the lab's laser cutter", 'Equipment'),
        'quiz': ('Laser Cutter Quiz', 'Test your knowledge of laser cutter operation and safety', [
            ('What should you never leave unattended when operating?',
             ['The computer', 'The laser cutter', 'Your notebook', 'Your phone'], 1,
             'Never leave the laser cutter unattended while it is operating to prevent fire hazards.'),
            ('What material should NEVER be cut in the laser cutter?',
             ['Wood', 'Paper', 'PVC', 'Acrylic'], 2,
             'PVC releases toxic chlorine gas when cut and can damage the machine.'),
        ]),
    },
    'ultimaker': {
        'course': ('Ultimaker 3D Printer Training', 'Learn how to use the Ultimaker 3D printer effectively', 'Equipment'),
        'quiz': ('Ultimaker 3D Printer Quiz', 'Test your knowledge of Ultimaker 3D printer operation', [
            ('What is the first thing you should check before starting a print?',
             ['The color of the filament', 'The bed leveling', 'The print time', 'The file name'], 1,
             'Always ensure the print bed is properly leveled before starting a print.'),
            ('What material is generally easiest to print with?',
             ['ABS', 'Nylon', 'PLA', 'TPU'], 2,
             'PLA is the most forgiving material for 3D printing and has the widest temperature range.'),
        ]),
    },
    'x1-e-carbon': {
        'course': ('X1 E Carbon 3D Printer', 'Advanced training for carbon fiber composite printing', 'Equipment'),
        'quiz': ('X1 E Carbon 3D Printer Quiz', 'Test your knowledge of carbon fiber composite printing', [
            ('What special property does carbon fiber filament have?',
             ["It's flexible", "It's stronger and stiffer", "It's transparent", "It's magnetic"], 1,
             'Carbon fiber filaments provide added strength and stiffness to printed parts.'),
            ('What type of nozzle is recommended for carbon fiber filaments?',
             ['Brass', 'Stainless steel', 'Hardened steel', 'Any standard nozzle'], 2,
             'Hardened steel nozzles are required because carbon fiber filaments are highly abrasive.'),
        ]),
    },
    'bambu-lab-x1-e': {
        'course': ('Bambu Lab 3D Printer', 'Learn to use the Bambu Lab printer for high-quality prints', 'Equipment'),
        'quiz': ('Bambu Lab 3D Printer Quiz', 'Test your knowledge of Bambu Lab printer operation', [
            ('What is a unique feature of the Bambu Lab printer?',
             ['Water cooling', 'High print speeds', 'Built-in camera', 'All of the above'], 3,
             'The Bambu Lab printer features all of these advanced capabilities.'),
            ('What should you check before starting a high-speed print?',
             ['That the printer is firmly placed on a stable surface', 'That the filament is properly loaded',
              'That the print cooling fans are working', 'All of the above'], 3,
             'All of these checks are important before starting a high-speed print.'),
        ]),
    },
    'safety-cabinet': {
        'course': ('Safety Cabinet Usage', 'Learn how to properly use and store materials in the safety cabinet', 'Safety'),
        'quiz': ('Safety Cabinet Quiz', 'Test your knowledge of hazardous material storage', [
            ('What should never be stored together?',
             ['Flammable and combustible materials', 'Acids and bases', 'Dry and wet materials',
              'New and old materials'], 1,
             'Acids and bases can react violently if mixed and should be stored separately.'),
            ('What information must be visible on all containers in the safety cabinet?',
             ['Purchase date', 'Price', 'Chemical name and hazards', 'Manufacturer name'], 2,
             'All containers must be clearly labeled with the chemical name and hazard information.'),
        ]),
    },
    None: {
        'course': ('Machine Safety Fundamentals', 'Essential safety training required for all makerspace users', 'Safety'),
        'quiz': ('Machine Safety Fundamentals Quiz', 'Test your knowledge of basic makerspace safety', [
            ('What should you do first in case of a fire?',
             ['Call the instructor', 'Try to put it out yourself', 'Activate the fire alarm',
              'Save your project files'], 2,
             'Always activate the fire alarm first to alert everyone in the building.'),
            ('When should you wear safety glasses?',
             ['Only when working with wood', 'Only when the instructor is watching',
              'Whenever operating machinery', 'Only when working with metal'], 2,
             'Safety glasses should be worn any time you are operating or near operating machinery.'),
        ]),
    },
}


class Command(BaseCommand):
    help = 'Create or refresh the default machines, courses and quizzes'

    def add_arguments(self, parser):
        parser.add_argument('--admin-username', type=str, help='Also create an admin account with this username')
        parser.add_argument('--admin-email', type=str, default='', help='Email for the admin account')
        parser.add_argument('--admin-password', type=str, help='Password for the admin account')

    def handle(self, *args, **options):
        with transaction.atomic():
            for template in MACHINES:
                self.seed_machine(template)

            if options['admin_username']:
                self.seed_admin(options['admin_username'], options['admin_email'], options['admin_password'])

        self.stdout.write(self.style.SUCCESS(f'Seeded {len(MACHINES)} machines with courses and quizzes'))

    def seed_machine(self, template):
        key = template['id']
        machine_id = key or _safety_course_id()
        defaults = {k: v for k, v in template.items() if k != 'id'}
        defaults['status'] = MachineStatus.AVAILABLE
        defaults['bookable'] = defaults['category'] != MachineCategory.SAFETY
        defaults['deleted_at'] = None

        machine, created = Machine.objects.update_or_create(id=machine_id, defaults=defaults)
        verb = 'Created' if created else 'Updated'
        self.stdout.write(f'  {verb} machine {machine.pk}: {machine.name}')

        training = TRAINING[key]
        title, description, category = training['course']
        course, _ = Course.objects.update_or_create(
            id=f'{machine_id}-course',
            defaults={
                'title': title,
                'description': description,
                'category': category,
                'machine': machine,
                'difficulty': template['difficulty'],
                'deleted_at': None,
            },
        )

        quiz_title, quiz_description, questions = training['quiz']
        Quiz.objects.update_or_create(
            id=f'{machine_id}-quiz',
            defaults={
                'title': quiz_title,
                'description': quiz_description,
                'category': category,
                'course': course,
                'machine': machine,
                'questions': [
                    {'question': q, 'options': options, 'correct_answer': answer, 'explanation': explanation}
                    for q, options, answer, explanation in questions
                ],
                'passing_score': 70,
                'difficulty': template['difficulty'],
                'deleted_at': None,
            },
        )

    def seed_admin(self, username, email, password):
        user, created = User.objects.get_or_create(username=username, defaults={'email': email})
        if created:
            if password:
                user.set_password(password)
            else:
                user.set_unusable_password()
            user.save()
            self.stdout.write(self.style.SUCCESS(f'Created admin account {username}'))
        profile, _ = UserProfile.objects.get_or_create(user=user)
        if profile.role != UserProfile.ROLE_ADMIN:
            profile.role = UserProfile.ROLE_ADMIN
            profile.save(update_fields=['role', 'updated_at'])
            self.stdout.write(self.style.SUCCESS(f'Granted admin role to {username}'))
